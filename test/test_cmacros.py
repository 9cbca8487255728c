"""Tests for the top-level translate_header API."""

import pytest

from cmacros import translate_header


class TestTranslateHeader:
    """Tests for translate_header."""

    def test_rust(self) -> None:
        code = "#define MAX_RETRIES 5\n#define TIMEOUT_MS (MAX_RETRIES * 1000)\n"
        assert translate_header(code) == (
            "pub const MAX_RETRIES: i32 = 5;\npub const TIMEOUT_MS: i32 = (MAX_RETRIES * 1000);\n"
        )

    def test_python(self, sample_header) -> None:
        text = translate_header(sample_header, target="python")
        assert "MASK: int = 0xFF\n" in text
        assert "SCALE: float = 2.5\n" in text
        assert "SEPARATOR: str = ':'\n" in text

    def test_source_name(self) -> None:
        text = translate_header("#define A 1\n", source_name="a.h")
        assert text.startswith("// Constants translated from a.h\n\n")

    def test_exclude_and_skipped(self, sample_header) -> None:
        text = translate_header(sample_header, exclude=["*_H"], include_skipped=True)
        assert "// SAMPLE_H: skipped (SAMPLE_H matches an exclude pattern)\n" in text
        assert "// CALL: skipped (untranslatable body: foo(1))\n" in text

    def test_nothing_to_translate(self) -> None:
        assert translate_header("int x;\n") == ""

    def test_debug(self, capsys) -> None:
        """Debug output goes to stderr only."""
        text = translate_header("#define A 1\n#define F(x) x\n", debug=True)
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "[cmacros] Found 2 macros" in captured.err
        assert "[cmacros] Translated 1 of 2 macros" in captured.err
        assert "[cmacros]   line 2: F skipped: function-like macro" in captured.err
        assert text == "pub const A: i32 = 1;\n"

    def test_report(self) -> None:
        """Diagnostics, then skipped macros, are passed to the report callback."""
        messages = []
        translate_header(
            "#define A 1\n#define A 2\n#define F(x) x\n",
            report=lambda line, message: messages.append((line, message)),
        )
        assert messages == [
            (2, "'A' redefined (previous definition at line 1)"),
            (3, "F skipped: function-like macro"),
        ]

    def test_unknown_target(self) -> None:
        with pytest.raises(ValueError, match="Unknown target"):
            translate_header("#define A 1\n", target="cobol")
