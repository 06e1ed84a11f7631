"""Content assembler — renders budgeted file previews for the prompt.

This is the final transformation before existing files enter the prompt.
"""

from __future__ import annotations

from typing import Mapping

from extension_builder.services.token_budget import BudgetedContent


def assemble(budget: BudgetedContent, sizes: Mapping[str, int]) -> str:
    """Combine all non-empty budget slots into a single existing-files block.

    *sizes* maps each file name to its full (untruncated) character count so
    the model knows how much of the file it is looking at.
    """
    sections: list[str] = []

    for slot in budget.slots:
        if not slot.content:
            sections.append(f"--- {slot.name} ({sizes.get(slot.name, 0)} chars, omitted) ---")
            continue
        header = f"--- {slot.name} ({sizes.get(slot.name, len(slot.content))} chars) ---"
        sections.append(f"{header}\n{slot.content}")

    return "\n\n".join(sections)
