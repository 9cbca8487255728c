"""Extraction of ``#define`` directives from raw C header text.

The extractor is a small scanner rather than a preprocessor: it splices
continuation lines, removes comments and picks out ``#define`` / ``#undef``
directives. It does not evaluate ``#if`` blocks or expand macros.

Scanning Stages
---------------
1. **Line splicing** - a physical line ending in an unescaped backslash is
   joined with the next one.
2. **Comment removal** - a state machine that knows about string and
   character literals, so ``"a // b"`` survives intact. A block comment is
   replaced by a single space; one spanning several lines joins them.
3. **Directive parsing** - ``#`` (optionally followed by whitespace) and
   ``define``, the macro name, an optional parameter list, the body.

Malformed directives never raise; they are reported as
:class:`~cmacros.ir.Diagnostic` records and skipped.

Example
-------
::

    from cmacros.extractor import extract_macros

    macros, diagnostics = extract_macros(open("foo.h").read())
    for macro in macros:
        print(macro.name, macro.params, macro.body)
"""

import re
from enum import (
    Enum,
)
from typing import (
    Iterable,
    Iterator,
)

from cmacros.ir import (
    Diagnostic,
    DiagnosticKind,
    MacroDef,
)

_DIRECTIVE_RE = re.compile(r"\s*#\s*(define|undef)\b(.*)", re.DOTALL)
_NAME_RE = re.compile(r"[A-Za-z0-9_]+")
_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")


class _MalformedDirective(ValueError):
    """Raised internally when a directive cannot be parsed."""


class _ScanState(Enum):
    NORMAL = "normal"
    LINE_COMMENT = "line-comment"
    BLOCK_COMMENT = "block-comment"
    STRING = "string"
    CHAR = "char"


def _splice_lines(source_text: str) -> Iterator[tuple[int, str]]:
    """Yield ``(line_number, text)`` for each line after joining continuations.

    The line number is that of the first physical line. Whitespace between
    the backslash and the newline is tolerated, as GCC does.
    """
    start: int | None = None
    parts: list[str] = []
    for number, physical in enumerate(source_text.split("\n"), start=1):
        if physical.endswith("\r"):
            physical = physical[:-1]
        if start is None:
            start = number

        stripped = physical.rstrip(" \t")
        trailing = len(stripped) - len(stripped.rstrip("\\"))
        if trailing % 2 == 1:
            parts.append(stripped[:-1])
            continue

        parts.append(physical)
        yield start, "".join(parts)
        start = None
        parts = []

    if start is not None:
        yield start, "".join(parts)


def _strip_comments(lines: Iterable[tuple[int, str]]) -> Iterator[tuple[int, str]]:
    """Remove comments from spliced lines.

    A block comment left open at the end of a line swallows the newline, so
    the following line continues the same logical line. The reported line
    number is the one where the first non-blank character appears.
    """
    state = _ScanState.NORMAL
    out: list[str] = []
    first_line: int | None = None
    content_line: int | None = None

    for number, line in lines:
        if first_line is None:
            first_line = number
        i = 0
        while i < len(line):
            char = line[i]
            pair = line[i : i + 2]

            if state is _ScanState.NORMAL:
                if pair == "//":
                    state = _ScanState.LINE_COMMENT
                    break
                if pair == "/*":
                    state = _ScanState.BLOCK_COMMENT
                    out.append(" ")
                    i += 2
                    continue
                if char == '"':
                    state = _ScanState.STRING
                elif char == "'":
                    state = _ScanState.CHAR
                out.append(char)
            elif state is _ScanState.BLOCK_COMMENT:
                if pair == "*/":
                    state = _ScanState.NORMAL
                    i += 2
                    continue
            else:
                out.append(char)
                if char == "\\" and i + 1 < len(line):
                    out.append(line[i + 1])
                    i += 2
                    continue
                if (state is _ScanState.STRING and char == '"') or (state is _ScanState.CHAR and char == "'"):
                    state = _ScanState.NORMAL

            if content_line is None and out and not out[-1].isspace():
                content_line = number
            i += 1

        if state is _ScanState.BLOCK_COMMENT:
            continue

        # Line comments end here; so do unterminated literals
        state = _ScanState.NORMAL
        yield content_line or first_line, "".join(out)
        out = []
        first_line = None
        content_line = None

    if first_line is not None:
        yield content_line or first_line, "".join(out)


def _normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs outside string/char literals and trim."""
    result: list[str] = []
    quote: str | None = None
    i = 0
    while i < len(text):
        char = text[i]
        if quote is not None:
            result.append(char)
            if char == "\\" and i + 1 < len(text):
                result.append(text[i + 1])
                i += 2
                continue
            if char == quote:
                quote = None
        elif char.isspace():
            if result and result[-1] != " ":
                result.append(" ")
        else:
            if char in "\"'":
                quote = char
            result.append(char)
        i += 1
    return "".join(result).strip()


def _read_name(text: str, pos: int, what: str) -> tuple[str, int]:
    """Read an identifier greedily starting at ``pos``."""
    match = _NAME_RE.match(text, pos)
    if match is None:
        if pos >= len(text):
            raise _MalformedDirective(f"{what} is missing")
        raise _MalformedDirective(f"unexpected {text[pos]!r} where {what} was expected")
    name = match.group()
    if not _IDENTIFIER_RE.match(name):
        raise _MalformedDirective(f"invalid {what} {name!r}")
    return name, match.end()


def _parse_params(text: str, pos: int) -> tuple[tuple[str, ...], int]:
    """Parse a parameter list; ``pos`` points at the opening parenthesis.

    Returns the parameters and the position after the closing parenthesis.
    A trailing ``...`` (or GNU ``name...``) is kept as an opaque parameter.
    """
    params: list[str] = []
    expect_name = True
    pos += 1
    while True:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        if pos >= len(text):
            raise _MalformedDirective("unterminated parameter list")

        char = text[pos]
        if char == ")":
            if params and expect_name:
                raise _MalformedDirective("expected parameter name after ','")
            return tuple(params), pos + 1
        if not expect_name:
            if char == "," and not params[-1].endswith("..."):
                expect_name = True
                pos += 1
                continue
            if char == ",":
                raise _MalformedDirective("'...' must be the last parameter")
            raise _MalformedDirective(f"unexpected {char!r} in parameter list")

        if text.startswith("...", pos):
            params.append("...")
            pos += 3
        else:
            name, pos = _read_name(text, pos, "parameter name")
            if name in params:
                raise _MalformedDirective(f"duplicate parameter {name!r}")
            if text.startswith("...", pos):
                name += "..."
                pos += 3
            params.append(name)
        expect_name = False


def _parse_define(text: str, line: int) -> MacroDef:
    """Parse the text following ``#define``."""
    pos = len(text) - len(text.lstrip())
    if pos == 0 and text:
        raise _MalformedDirective("expected whitespace after '#define'")
    name, pos = _read_name(text, pos, "macro name")
    if name == "defined":
        raise _MalformedDirective("'defined' cannot be used as a macro name")

    params: tuple[str, ...] | None = None
    # Only a '(' directly after the name opens a parameter list
    if text.startswith("(", pos):
        params, pos = _parse_params(text, pos)

    return MacroDef(
        name=name,
        params=params,
        body=_normalize_whitespace(text[pos:]),
        source_line=line,
    )


def extract_macros(source_text: str) -> tuple[list[MacroDef], list[Diagnostic]]:
    """Extract macro definitions from C header text.

    Definitions are returned in file order. Redefining a name replaces the
    earlier entry in place (last definition wins) and adds a
    ``REDEFINITION`` diagnostic; ``#undef`` removes it.

    :param source_text: Header source code.
    :returns: Tuple of (macros, diagnostics).
    :raises TypeError: If ``source_text`` is not a string.

    Example
    -------
    ::

        macros, diagnostics = extract_macros("#define SIZE 100\\n")
        assert macros[0].body == "100"
    """
    if not isinstance(source_text, str):
        raise TypeError(f"Expected header text as str, got {type(source_text).__name__}")

    macros: dict[str, MacroDef] = {}
    diagnostics: list[Diagnostic] = []

    for line, text in _strip_comments(_splice_lines(source_text)):
        match = _DIRECTIVE_RE.match(text)
        if match is None:
            continue
        directive, rest = match.groups()

        try:
            if directive == "undef":
                name, _ = _read_name(rest, len(rest) - len(rest.lstrip()), "macro name")
                macros.pop(name, None)
                continue
            macro = _parse_define(rest, line)
        except _MalformedDirective as exc:
            diagnostics.append(Diagnostic(line, f"malformed #{directive}: {exc}"))
            continue

        previous = macros.get(macro.name)
        if previous is not None:
            if (previous.params, previous.body) == (macro.params, macro.body):
                message = f"{macro.name!r} redefined identically (previous definition at line {previous.source_line})"
            else:
                message = f"{macro.name!r} redefined (previous definition at line {previous.source_line})"
            diagnostics.append(Diagnostic(line, message, DiagnosticKind.REDEFINITION))
        macros[macro.name] = macro

    return list(macros.values()), diagnostics
