"""Deterministic token-budget allocator for existing-file context.

Uses ``tiktoken`` for exact token counting.  Each existing file gets a
preview capped at a per-file limit, and the files share one total budget
with a rollover mechanism so capacity left by short files is never wasted.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import tiktoken

# ── Constants ───────────────────────────────────────────────────────────────

_ENCODING_NAME = "cl100k_base"  # GPT-4o family

_TRUNCATION_NOTE = "\n[… truncated to fit token budget]"


# ── Public helpers ──────────────────────────────────────────────────────────

_encoder: tiktoken.Encoding | None = None


def _get_encoder() -> tiktoken.Encoding:
    global _encoder  # noqa: PLW0603
    if _encoder is None:
        _encoder = tiktoken.get_encoding(_ENCODING_NAME)
    return _encoder


def _fits_without_encoding(text: str, max_tokens: int) -> bool:
    # Every token covers at least one UTF-8 byte.
    return len(text.encode("utf-8")) <= max_tokens


def count_tokens(text: str) -> int:
    """Return the exact token count for *text* under cl100k_base."""
    if not text:
        return 0
    return len(_get_encoder().encode(text))


def truncate_to_budget(text: str, max_tokens: int) -> str:
    """Truncate *text* to fit within *max_tokens*, cutting at line boundaries.

    Attempts to preserve complete lines rather than splitting mid-word.
    """
    if max_tokens <= 0:
        return ""
    if _fits_without_encoding(text, max_tokens):
        return text

    tokens = _get_encoder().encode(text)
    if len(tokens) <= max_tokens:
        return text

    truncated = _get_encoder().decode(tokens[:max_tokens])

    # Roll back to the last newline for a clean cut
    last_nl = truncated.rfind("\n")
    if last_nl > len(truncated) // 2:
        truncated = truncated[: last_nl + 1]

    return truncated + _TRUNCATION_NOTE


# ── Budget allocation ───────────────────────────────────────────────────────


@dataclass
class BudgetSlot:
    """One file preview within the token budget."""

    name: str
    max_tokens: int
    content: str = ""
    used_tokens: int = 0

    @property
    def truncated(self) -> bool:
        return self.content.endswith(_TRUNCATION_NOTE)


@dataclass
class BudgetedContent:
    """The budgeted previews, ready for prompt assembly.

    ``exact`` is False when every preview fitted by byte length alone; the
    token totals are then upper bounds rather than exact counts.
    """

    slots: list[BudgetSlot] = field(default_factory=list)
    total_tokens: int = 0
    budget_limit: int = 0
    exact: bool = False

    def get_slot(self, name: str) -> BudgetSlot | None:
        for slot in self.slots:
            if slot.name == name:
                return slot
        return None


def allocate(
    contents: dict[str, str],
    total_budget: int = 6_000,
    per_slot_max: int = 1_500,
) -> BudgetedContent:
    """Allocate *contents* (keyed by file name) within *total_budget* tokens.

    Slots are filled in insertion order.  Each slot may use up to
    *per_slot_max* tokens, never more than what is still unspent.

    Slots are charged their UTF-8 byte length (an upper bound on tokens)
    until some text would not fit that way.  From then on every slot,
    including the ones already filled, is charged its exact token count, so
    nothing is cut or omitted while real budget is left.

    Parameters
    ----------
    contents:
        Mapping of ``{"popup.js": "...", ...}`` with each file's full text.
    total_budget:
        Maximum tokens for all previews together.
    per_slot_max:
        Cap for any single file preview.
    """
    slots: list[BudgetSlot] = []
    remaining = total_budget
    exact = False

    for name, raw_text in contents.items():
        effective_max = max(min(per_slot_max, remaining), 0)

        if raw_text and not exact and not _fits_without_encoding(raw_text, effective_max):
            exact = True
            for slot in slots:
                slot.used_tokens = count_tokens(slot.content)
            remaining = total_budget - sum(s.used_tokens for s in slots)
            effective_max = max(min(per_slot_max, remaining), 0)

        if not raw_text or effective_max == 0:
            slots.append(BudgetSlot(name=name, max_tokens=effective_max))
            continue

        if exact:
            fitted_text = truncate_to_budget(raw_text, effective_max)
            used = count_tokens(fitted_text)
        else:
            fitted_text, used = raw_text, len(raw_text.encode("utf-8"))

        remaining -= used
        slots.append(
            BudgetSlot(
                name=name,
                max_tokens=effective_max,
                content=fitted_text,
                used_tokens=used,
            )
        )

    total_used = sum(s.used_tokens for s in slots)
    return BudgetedContent(
        slots=slots, total_tokens=total_used, budget_limit=total_budget, exact=exact
    )
