"""Intermediate Representation (IR) for extracted C macros.

This module defines the data shared by every stage of the pipeline. The
extractor produces :class:`MacroDef` records, the classifier maps each body
to a value kind, and translation policies turn both into outcomes.

Design Principles
-----------------
* **Immutable**: every record is a frozen dataclass, so one extraction can be
  translated many times (with different policies) without interference.
* **Closed variants**: value kinds and expression tokens are small, fixed sets
  of classes; consumers dispatch on them with ``isinstance``.
* **Target-agnostic**: nothing here knows about Rust, Python or any other
  output language.

Value Kinds
-----------
* :class:`Integer` - decimal, hex, octal or binary literal
* :class:`Float` - decimal or scientific-notation literal
* :class:`Char` - single character literal
* :class:`Str` - string literal
* :class:`Expr` - arithmetic/bitwise expression over literals and identifiers
* :class:`Opaque` - anything else

Example
-------
::

    from cmacros.extractor import extract_macros
    from cmacros.classifier import classify

    macros, diagnostics = extract_macros("#define MASK 0xFF\\n")
    value = classify(macros[0].body)
    print(value.c_type)  # int
"""

from __future__ import (
    annotations,
)

from dataclasses import (
    dataclass,
    field,
)
from enum import (
    Enum,
)
from typing import (
    Iterable,
    Iterator,
    Optional,
    Protocol,
    Union,
)

# =============================================================================
# Extraction Results
# =============================================================================


class DiagnosticKind(Enum):
    """Category of an extraction diagnostic."""

    MALFORMED_DIRECTIVE = "malformed-directive"
    REDEFINITION = "redefinition"


@dataclass(frozen=True)
class Diagnostic:
    """A problem (or notable event) found while extracting macros.

    Diagnostics are returned as data and never printed by the library.

    :param line: 1-based line number of the offending ``#define``.
    :param message: Human-readable description.
    :param kind: Category of the diagnostic.
    """

    line: int
    message: str
    kind: DiagnosticKind = DiagnosticKind.MALFORMED_DIRECTIVE

    def __str__(self) -> str:
        return f"line {self.line}: {self.message}"


@dataclass(frozen=True)
class MacroDef:
    """A single ``#define`` extracted from header text.

    :param name: The macro name, a valid C identifier.
    :param params: Parameter names for function-like macros (an empty tuple
        for ``FOO()``), or None for object-like macros. A variadic macro ends
        with the ``"..."`` parameter.
    :param body: Replacement text with comments removed, continuations joined
        and whitespace runs collapsed.
    :param source_line: 1-based line of the ``#define`` in the input.

    Examples
    --------
    Object-like macro::

        MacroDef("SIZE", None, "100", 3)  # #define SIZE 100

    Function-like macro::

        MacroDef("MAX", ("a", "b"), "((a) > (b) ? (a) : (b))", 7)
    """

    name: str
    params: Optional[tuple[str, ...]] = None
    body: str = ""
    source_line: int = 1

    @property
    def is_function_like(self) -> bool:
        return self.params is not None

    @property
    def is_variadic(self) -> bool:
        return bool(self.params) and self.params[-1].endswith("...")

    def __str__(self) -> str:
        text = f"#define {self.name}"
        if self.params is not None:
            text += f"({','.join(self.params)})"
        if self.body:
            text += f" {self.body}"
        return text


# =============================================================================
# C Types
# =============================================================================

# Bit widths of the C integer types on an LP64 host
INTEGER_WIDTHS = {"int": 32, "long": 64, "long long": 64}

_INTEGER_RANKS = {"int": 0, "long": 1, "long long": 2}
_FLOAT_RANKS = {"float": 0, "double": 1, "long double": 2}


@dataclass(frozen=True)
class CType:
    """A C type name with qualifiers, used to pick target-language types.

    String literals are represented as ``CType("char", ("const",))``, the
    element type of ``const char*``.

    :param name: Base type name (``"int"``, ``"long long"``, ``"double"``...).
    :param qualifiers: Qualifiers such as ``("unsigned",)`` or ``("const",)``.
    """

    name: str
    qualifiers: tuple[str, ...] = ()

    @property
    def is_unsigned(self) -> bool:
        return "unsigned" in self.qualifiers

    @property
    def is_floating(self) -> bool:
        return self.name in _FLOAT_RANKS

    @property
    def is_integer(self) -> bool:
        return self.name in _INTEGER_RANKS

    @property
    def width(self) -> int:
        """Width in bits of an integer type."""
        return INTEGER_WIDTHS[self.name]

    def __str__(self) -> str:
        if self.qualifiers:
            return f"{' '.join(self.qualifiers)} {self.name}"
        return self.name


INT_TYPE = CType("int")
CHAR_TYPE = CType("char")
STRING_TYPE = CType("char", ("const",))


def common_type(left: CType, right: CType) -> CType:
    """Apply the C usual arithmetic conversions to two operand types.

    ``char`` operands are promoted to ``int`` first. Widths follow LP64.
    """
    left = INT_TYPE if left == CHAR_TYPE else left
    right = INT_TYPE if right == CHAR_TYPE else right

    if left.is_floating or right.is_floating:
        floats = [t for t in (left, right) if t.is_floating]
        return max(floats, key=lambda t: _FLOAT_RANKS[t.name])

    if left == right:
        return left
    if left.is_unsigned == right.is_unsigned:
        return max(left, right, key=lambda t: _INTEGER_RANKS[t.name])

    unsigned, signed = (left, right) if left.is_unsigned else (right, left)
    if _INTEGER_RANKS[unsigned.name] >= _INTEGER_RANKS[signed.name]:
        return unsigned
    if signed.width > unsigned.width:
        return signed
    return CType(signed.name, ("unsigned",))


# =============================================================================
# Value Kinds
# =============================================================================


@dataclass(frozen=True)
class Integer:
    """Integer literal.

    :param sign: ``"-"`` for a negated literal, otherwise ``""``.
    :param radix: 10, 16, 8 or 2.
    :param digits: The digits without radix prefix or suffix
        (``"FF"`` for ``0xFF``, ``"755"`` for ``0755``).
    :param suffix: Type suffix as written (``"u"``, ``"UL"``, ``"ll"``...).
    """

    sign: str
    radix: int
    digits: str
    suffix: str = ""

    @property
    def magnitude(self) -> int:
        return int(self.digits, self.radix)

    @property
    def value(self) -> int:
        return -self.magnitude if self.sign == "-" else self.magnitude

    @property
    def is_unsigned(self) -> bool:
        return "u" in self.suffix.lower()

    @property
    def c_type(self) -> CType:
        """Type of the literal under the C rules (before any negation).

        Unsuffixed decimal literals take the first of ``int``, ``long``,
        ``long long`` that can hold the value; hex, octal and binary literals
        may also become unsigned. ``u`` restricts to unsigned types and
        ``l``/``ll`` raise the starting rank.
        """
        suffix = self.suffix.lower()
        unsigned_only = "u" in suffix
        allow_unsigned = unsigned_only or self.radix != 10
        magnitude = self.magnitude
        for name in ("int", "long", "long long")[suffix.count("l") :]:
            width = INTEGER_WIDTHS[name]
            if not unsigned_only and magnitude < 2 ** (width - 1):
                return CType(name)
            if allow_unsigned and magnitude < 2**width:
                return CType(name, ("unsigned",))
        return CType("long long", ("unsigned",))

    def __str__(self) -> str:
        prefix = {16: "0x", 8: "0", 2: "0b"}.get(self.radix, "")
        return f"{self.sign}{prefix}{self.digits}{self.suffix}"


@dataclass(frozen=True)
class Float:
    """Floating-point literal.

    :param text: The literal without its suffix, including a leading ``-``
        when negated (e.g. ``"3.14"``, ``"-1.5e-5"``, ``"0x1.8p3"``).
    :param suffix: ``"f"``, ``"l"`` (either case) or ``""``.
    """

    text: str
    suffix: str = ""

    @property
    def is_hex(self) -> bool:
        return self.text.lstrip("+-")[:2].lower() == "0x"

    @property
    def value(self) -> float:
        if self.is_hex:
            return float.fromhex(self.text)
        return float(self.text)

    @property
    def c_type(self) -> CType:
        suffix = self.suffix.lower()
        if suffix == "f":
            return CType("float")
        if suffix == "l":
            return CType("long double")
        return CType("double")

    def __str__(self) -> str:
        return f"{self.text}{self.suffix}"


@dataclass(frozen=True)
class Char:
    """Character literal; ``text`` is the content between the quotes."""

    text: str

    @property
    def value(self) -> str:
        return unescape(self.text)


@dataclass(frozen=True)
class Str:
    """String literal; ``text`` is the content between the quotes with
    escape sequences kept verbatim."""

    text: str

    @property
    def value(self) -> str:
        return unescape(self.text)


@dataclass(frozen=True)
class Ident:
    """Identifier inside an expression."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Number:
    """Numeric literal inside an expression."""

    literal: Union[Integer, Float]

    def __str__(self) -> str:
        return str(self.literal)


@dataclass(frozen=True)
class Operator:
    """Arithmetic, bitwise or shift operator.

    :param op: Operator spelling as in C (``"+"``, ``"<<"``, ``"~"``...).
    :param unary: True for prefix use (``-x``, ``~x``).
    """

    op: str
    unary: bool = False

    def __str__(self) -> str:
        return self.op


@dataclass(frozen=True)
class Paren:
    """Opening or closing parenthesis."""

    text: str

    def __str__(self) -> str:
        return self.text


ExprToken = Union[Ident, Number, Operator, Paren]


@dataclass(frozen=True)
class Expr:
    """Expression built only from literals, identifiers, arithmetic/bitwise
    operators and parentheses, e.g. ``(1 << 4)`` or ``A + B``."""

    tokens: tuple[ExprToken, ...]

    @property
    def identifiers(self) -> tuple[str, ...]:
        """Referenced identifiers, in order of first appearance."""
        names: dict[str, None] = {}
        for token in self.tokens:
            if isinstance(token, Ident):
                names.setdefault(token.name, None)
        return tuple(names)

    def __str__(self) -> str:
        return " ".join(str(token) for token in self.tokens)


@dataclass(frozen=True)
class Opaque:
    """A body that cannot be decomposed (calls, casts, statements, empty)."""

    text: str


ValueKind = Union[Integer, Float, Char, Str, Expr, Opaque]


# =============================================================================
# Translation Outcomes
# =============================================================================


class SkipKind(Enum):
    """Why a macro was not translated."""

    UNRESOLVED_REFERENCE = "unresolved-reference"
    UNTRANSLATABLE_SHAPE = "untranslatable-shape"
    CIRCULAR_REFERENCE = "circular-reference"
    EXCLUDED = "excluded"


@dataclass(frozen=True)
class Emit:
    """Emit a declaration.

    :param text: The complete target-language declaration.
    :param name: Target-language identifier of the declared constant.
    """

    text: str
    name: Optional[str] = None


@dataclass(frozen=True)
class Skip:
    """Do not emit anything for this macro."""

    reason: str
    kind: SkipKind = SkipKind.UNTRANSLATABLE_SHAPE


TranslationOutcome = Union[Emit, Skip]


# =============================================================================
# Symbol Table
# =============================================================================


@dataclass(frozen=True)
class SymbolTable:
    """Read-only view of every macro of one translation run.

    Policies use it to resolve identifiers referenced by :class:`Expr`
    values, both backwards and forwards in the file.
    """

    _entries: dict[str, tuple[MacroDef, ValueKind]] = field(default_factory=dict)

    @classmethod
    def build(cls, entries: Iterable[tuple[MacroDef, ValueKind]]) -> SymbolTable:
        return cls({macro.name: (macro, value) for macro, value in entries})

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __getitem__(self, name: str) -> tuple[MacroDef, ValueKind]:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, name: str) -> Optional[tuple[MacroDef, ValueKind]]:
        return self._entries.get(name)


# =============================================================================
# Translation Policy Protocol
# =============================================================================


class TranslationPolicy(Protocol):  # pylint: disable=too-few-public-methods
    """Strategy deciding how each macro is translated.

    :class:`cmacros.translator.DefaultPolicy` is the reference implementation;
    callers may pass any object with a matching ``decide`` method.

    Example
    -------
    ::

        from cmacros.ir import Emit, Skip

        class OnlyStrings:
            def decide(self, macro, value, symbols):
                if isinstance(value, Str):
                    return Emit(f"{macro.name} = {value.value!r}", macro.name)
                return Skip("not a string")
    """

    # pylint: disable=unnecessary-ellipsis

    def decide(self, macro: MacroDef, value: ValueKind, symbols: SymbolTable) -> TranslationOutcome:
        """Decide the outcome for one macro.

        :param macro: The macro being translated.
        :param value: Classification of ``macro.body``.
        :param symbols: All macros of the current run, for reference lookup.
        :returns: :class:`Emit` or :class:`Skip`.
        """
        ...


# =============================================================================
# Escape Sequences
# =============================================================================

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\\": "\\",
    "'": "'",
    '"': '"',
    "?": "?",
}


def unescape(text: str) -> str:
    """Decode the C escape sequences in the body of a char/string literal.

    Supports simple escapes, octal (``\\101``), hex (``\\x41``) and universal
    character names (``\\u00e9``, ``\\U0001F600``). Unknown escapes keep the
    escaped character, as most compilers do.
    """
    result: list[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char != "\\" or i + 1 == len(text):
            result.append(char)
            i += 1
            continue

        nxt = text[i + 1]
        if nxt in _SIMPLE_ESCAPES:
            result.append(_SIMPLE_ESCAPES[nxt])
            i += 2
        elif nxt in "01234567":
            end = i + 1
            while end < len(text) and end < i + 4 and text[end] in "01234567":
                end += 1
            result.append(chr(int(text[i + 1 : end], 8)))
            i = end
        elif nxt == "x":
            end = i + 2
            while end < len(text) and text[end] in "0123456789abcdefABCDEF":
                end += 1
            digits = text[i + 2 : end]
            result.append(chr(int(digits, 16) % 0x110000) if digits else "x")
            i = end
        elif nxt in "uU":
            count = 4 if nxt == "u" else 8
            digits = text[i + 2 : i + 2 + count]
            if len(digits) == count and all(d in "0123456789abcdefABCDEF" for d in digits):
                result.append(chr(int(digits, 16) % 0x110000))
                i += 2 + count
            else:
                result.append(nxt)
                i += 2
        else:
            result.append(nxt)
            i += 2
    return "".join(result)
