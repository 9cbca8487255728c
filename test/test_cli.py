"""Tests for CLI functionality."""

import json

import pytest
from click.testing import CliRunner

from cmacros import __version__, cli


@pytest.fixture
def outfile(tmp_path):
    """Path of an output file in a temporary directory."""
    return str(tmp_path / "out.txt")


def read(path: str) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read()


class TestVersion:
    """Tests for --version option."""

    def test_version(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert result.output.strip() == __version__


class TestListTargets:
    """Tests for --list-targets option."""

    def test_list_targets(self) -> None:
        """--list-targets shows every target and the default."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--list-targets"])
        assert result.exit_code == 0
        assert "rust" in result.output
        assert "python" in result.output
        assert "Default: rust" in result.output

    def test_list_targets_json(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["--list-targets", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert {target["name"] for target in data["targets"]} >= {"rust", "python"}

    def test_json_requires_list_targets(self, header_file) -> None:
        """--json without --list-targets is an error."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--json", header_file])
        assert result.exit_code == 1
        assert "--json requires --list-targets" in result.output


class TestTranslate:
    """Tests for translating a header file."""

    def test_missing_infile(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, [])
        assert result.exit_code == 2
        assert "Missing argument 'INFILE'" in result.output

    def test_default_target(self, header_file, outfile) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, [header_file, outfile])
        assert result.exit_code == 0
        lines = read(outfile).splitlines()
        assert lines[0] == f"// Constants translated from {header_file}"
        assert "pub const MAX_RETRIES: i32 = 5;" in lines
        assert "pub const TIMEOUT_MS: i32 = (MAX_RETRIES * 1000);" in lines

    def test_python_target(self, header_file, outfile) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["-t", "python", header_file, outfile])
        assert result.exit_code == 0
        assert "VERSION: str = '1.0'\n" in read(outfile)

    def test_unknown_target(self, header_file, outfile) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["--target", "cobol", header_file, outfile])
        assert result.exit_code == 2

    def test_skips_reported(self, header_file, outfile) -> None:
        """Skipped macros are reported on stderr with their line."""
        runner = CliRunner()
        result = runner.invoke(cli, [header_file, outfile])
        assert f"{header_file}:11: MAX skipped: function-like macro" in result.output

    def test_quiet(self, header_file, outfile) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["-q", header_file, outfile])
        assert result.exit_code == 0
        assert "skipped" not in result.output

    def test_diagnostics_reported(self, tmp_path, outfile) -> None:
        header = tmp_path / "dup.h"
        header.write_text("#define A 1\n#define A 2\n#define 1BAD\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(cli, [str(header), outfile])
        assert result.exit_code == 0
        assert f"{header}:2: 'A' redefined (previous definition at line 1)" in result.output
        assert f"{header}:3: malformed #define: invalid macro name '1BAD'" in result.output
        assert "pub const A: i32 = 2;" in read(outfile)

    def test_exclude_and_emit_skipped(self, header_file, outfile) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["-e", "*_H", "-e", "CALL", "--emit-skipped", header_file, outfile])
        assert result.exit_code == 0
        text = read(outfile)
        assert "// SAMPLE_H: skipped (SAMPLE_H matches an exclude pattern)\n" in text
        assert "// CALL: skipped (CALL matches an exclude pattern)\n" in text
        assert "// MAX: skipped (function-like macro)\n" in text

    def test_debug(self, header_file, outfile) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["--debug", header_file, outfile])
        assert result.exit_code == 0
        assert "[cmacros] Target: rust" in result.output
        assert "[cmacros] Found 10 macros" in result.output

    def test_debug_traces_skips(self, header_file, outfile) -> None:
        """--debug prints the same trace as translate_header(debug=True)."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--debug", "-q", header_file, outfile])
        assert result.exit_code == 0
        assert "[cmacros] Translated 7 of 10 macros" in result.output
        assert "[cmacros]   line 11: MAX skipped: function-like macro" in result.output
        assert f"{header_file}:11:" not in result.output


class TestExtractOnly:
    """Tests for --extract-only option."""

    def test_extract_only(self, header_file, outfile) -> None:
        """The normalized #define lines are printed in file order."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--extract-only", header_file, outfile])
        assert result.exit_code == 0
        lines = read(outfile).splitlines()
        assert lines[0] == "#define SAMPLE_H"
        assert lines[1] == "#define MAX_RETRIES 5"
        assert "#define MAX(a,b) ((a) > (b) ? (a) : (b))" in lines
        assert "#define FLAGS (1 << 4) | (1 << 2)" in lines
        assert len(lines) == 10

    def test_extract_only_conflicts(self, header_file, outfile) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["--extract-only", "--emit-skipped", header_file, outfile])
        assert result.exit_code == 1
        assert "cannot be combined" in result.output
