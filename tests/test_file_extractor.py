"""
Tests for file block extraction — marker lexer, fallback, streaming.
"""

from __future__ import annotations

import logging

from conftest import MANIFEST, POPUP_HTML, POPUP_JS, marked

from extension_builder.domain.entities import FileLanguage
from extension_builder.services import file_extractor
from extension_builder.services.file_extractor import (
    StreamingFileExtractor,
    extract_fenced_files,
    extract_files,
    scan_blocks,
)


# ═══════════════════════════════════════════════════════════════════════
#  Marker lexer
# ═══════════════════════════════════════════════════════════════════════


class TestScanBlocks:
    def test_blocks_in_source_order(self):
        text = "intro\n=== a.js ===\none\n=== b.css ===\ntwo\n"
        blocks = scan_blocks(text)
        assert [b.name for b in blocks] == ["a.js", "b.css"]
        assert blocks[0].content == "one\n"
        assert blocks[0].closed is True
        assert blocks[1].closed is False

    def test_text_before_first_marker_is_ignored(self):
        blocks = scan_blocks("EXPLANATION: hi\nsome prose\n=== a.js ===\nx\n")
        assert len(blocks) == 1
        assert "prose" not in blocks[0].content

    def test_inline_triple_equals_is_not_a_marker(self):
        text = "=== popup.js ===\nif (a === b) { go(); }\nconst c = 1 === 2 === 3;\n"
        blocks = scan_blocks(text)
        assert len(blocks) == 1
        assert "a === b" in blocks[0].content

    def test_marker_needs_valid_filename(self):
        text = "=== popup.js ===\nconsole.log('x');\n=== EXISTING FILES ===\nmore\n"
        blocks = scan_blocks(text)
        assert len(blocks) == 1
        assert "=== EXISTING FILES ===" in blocks[0].content

    def test_path_traversal_name_is_not_a_marker(self):
        blocks = scan_blocks("=== ../evil.js ===\nalert(1)\n")
        assert blocks == []

    def test_marker_inside_content_ends_the_block(self):
        text = (
            "=== README.md ===\nUse markers like:\n=== example.js ===\n"
            "console.log('example');\n"
        )
        blocks = scan_blocks(text)
        assert [b.name for b in blocks] == ["README.md", "example.js"]

    def test_tolerates_whitespace_and_crlf(self):
        blocks = scan_blocks("  ===  popup.js  ===  \r\nlet x = 1;\r\n")
        assert blocks[0].name == "popup.js"

    def test_subdirectory_names(self):
        blocks = scan_blocks("=== scripts/utils.js ===\nexport const a = 1;\n")
        assert blocks[0].name == "scripts/utils.js"


# ═══════════════════════════════════════════════════════════════════════
#  extract_files
# ═══════════════════════════════════════════════════════════════════════


class TestExtractFiles:
    def test_round_trip(self):
        files = [
            ("manifest.json", MANIFEST),
            ("popup.html", POPUP_HTML),
            ("popup.js", POPUP_JS),
            ("utils.js", "export function sum(a, b) { return a + b; }"),
        ]
        result = extract_files(marked(*files))
        assert [(f.name, f.content) for f in result] == files

    def test_languages_are_derived(self):
        result = extract_files(marked(("manifest.json", MANIFEST), ("popup.js", POPUP_JS)))
        assert [f.language for f in result] == [FileLanguage.JSON, FileLanguage.JAVASCRIPT]

    def test_short_content_is_skipped_with_warning(self, caplog):
        text = marked(("popup.js", POPUP_JS), ("empty.css", "a{}"))
        with caplog.at_level(logging.WARNING):
            result = extract_files(text)
        assert [f.name for f in result] == ["popup.js"]
        assert "empty.css too short" in caplog.text

    def test_custom_min_length(self):
        result = extract_files(marked(("a.css", "a{}")), min_length=2)
        assert result[0].content == "a{}"

    def test_fenced_content_inside_marker_is_cleaned(self):
        text = "=== popup.js ===\n```javascript\nconsole.log(“hi”);\n```\n"
        result = extract_files(text)
        assert result[0].content == 'console.log("hi");'

    def test_empty_text(self):
        assert extract_files("") == ()

    def test_nothing_recoverable(self):
        assert extract_files("Sorry, I cannot help with that request.") == ()

    def test_falls_back_to_fenced_blocks(self, caplog):
        text = (
            "Here you go:\n"
            f"```json\n{MANIFEST}\n```\n"
            f"```html\n{POPUP_HTML}\n```\n"
            f"```js\n{POPUP_JS}\n```\n"
        )
        with caplog.at_level(logging.WARNING):
            result = extract_files(text)
        assert [f.name for f in result] == ["manifest.json", "popup.html", "popup.js"]
        assert "trying fenced code blocks" in caplog.text

    def test_fallback_not_used_when_markers_work(self):
        text = marked(("popup.js", POPUP_JS)) + "\n```css\nbody { color: red; }\n```\n"
        result = extract_files(text)
        assert [f.name for f in result] == ["popup.js"]


class TestFallbackNaming:
    @staticmethod
    def _block(lang: str, body: str) -> str:
        return f"```{lang}\n{body}\n```\n"

    def test_positional_names(self):
        js = [f"console.log('script number {i}');" for i in range(5)]
        html = [f"<html><body>page {i}</body></html>" for i in range(3)]
        css = [f"body {{ margin: {i}px; }}" for i in range(3)]
        text = "".join(
            [self._block("javascript", b) for b in js]
            + [self._block("html", b) for b in html]
            + [self._block("css", b) for b in css]
        )
        names = [f.name for f in extract_fenced_files(text)]
        assert names == [
            "popup.html", "options.html", "page2.html",
            "popup.css", "options.css", "style2.css",
            "popup.js", "background.js", "content.js", "script3.js", "script4.js",
        ]

    def test_only_first_json_block_becomes_manifest(self):
        text = self._block("json", '{"name": "first"}') + self._block("json", '{"name": "second"}')
        files = extract_fenced_files(text)
        assert [f.name for f in files] == ["manifest.json"]
        assert "first" in files[0].content

    def test_unknown_languages_ignored(self):
        text = self._block("python", "print('hello world')") + self._block("", "plain text block")
        assert extract_fenced_files(text) == []


# ═══════════════════════════════════════════════════════════════════════
#  Streaming
# ═══════════════════════════════════════════════════════════════════════


class TestStreamingFileExtractor:
    def test_file_reported_when_next_marker_arrives(self):
        extractor = StreamingFileExtractor()
        assert extractor.feed("EXPLANATION: x\n=== popup.js ===\n") == []
        assert extractor.feed(POPUP_JS + "\n") == []
        completed = extractor.feed("=== popup.css ===\nbody { margin: 0; }\n")
        assert [f.name for f in completed] == ["popup.js"]
        assert [f.name for f in extractor.finish()] == ["popup.css"]

    def test_each_file_reported_once(self, basic_response):
        extractor = StreamingFileExtractor()
        seen = []
        for start in range(0, len(basic_response), 5):
            seen.extend(extractor.feed(basic_response[start : start + 5]))
        seen.extend(extractor.finish())
        assert [f.name for f in seen] == ["manifest.json", "popup.html", "popup.js"]
        assert extractor.finish() == []

    def test_streamed_files_match_batch_extraction(self, basic_response):
        extractor = StreamingFileExtractor()
        streamed = []
        for start in range(0, len(basic_response), 11):
            streamed.extend(extractor.feed(basic_response[start : start + 11]))
        streamed.extend(extractor.finish())
        assert tuple(streamed) == extract_files(basic_response)
        assert extractor.text == basic_response

    def test_marker_split_across_chunks(self):
        extractor = StreamingFileExtractor()
        assert extractor.feed("=== pop") == []
        assert extractor.feed("up.js ===\n" + POPUP_JS[:20]) == []
        assert extractor.feed(POPUP_JS[20:] + "\n=== popup") == []
        assert [f.name for f in extractor.feed(".css ===\n")] == ["popup.js"]

    def test_trailing_line_without_newline(self):
        extractor = StreamingFileExtractor()
        extractor.feed("=== popup.js ===\n")
        extractor.feed(POPUP_JS)
        assert [f.content for f in extractor.finish()] == [POPUP_JS]

    def test_each_line_lexed_once(self, basic_response, monkeypatch):
        lexed: list[str] = []
        marker_name = file_extractor._marker_name

        def _counting(line: str):
            lexed.append(line)
            return marker_name(line)

        monkeypatch.setattr(file_extractor, "_marker_name", _counting)
        extractor = StreamingFileExtractor()
        for start in range(0, len(basic_response), 4):
            extractor.feed(basic_response[start : start + 4])
        extractor.finish()

        assert "".join(lexed) == basic_response
        assert len(lexed) == basic_response.count("\n")
