# pylint: disable=cyclic-import
# Cyclic import is intentional - targets register themselves when loaded
"""Rust target.

Emits ``pub const`` items::

    pub const MAX_RETRIES: i32 = 5;
    pub const TIMEOUT_MS: i32 = (MAX_RETRIES * 1000);
    pub const VERSION: &'static str = "1.0";

Type mapping (LP64)
-------------------
* ``int`` / ``unsigned int`` - ``i32`` / ``u32``
* ``long``, ``long long`` - ``i64``; unsigned variants - ``u64``
* ``float`` - ``f32``; ``double``, ``long double`` - ``f64``
* ``char`` - ``char``; string literals - ``&'static str``

Rust does not mix operand types implicitly, so references to constants of a
different type are cast with ``as`` and integer literals in floating-point
expressions are written as floats. Negation in an unsigned expression uses
``wrapping_neg()``, or the wrapped hex value for a literal.
"""

from cmacros.ir import (
    CHAR_TYPE,
    STRING_TYPE,
    CType,
    ExprToken,
    Float,
    Integer,
    Number,
    Operator,
    Paren,
)
from cmacros.targets import (
    register_target,
)
from cmacros.targets.base import (
    Target,
)

RUST_KEYWORDS = frozenset(
    {
        "as", "async", "await", "break", "const", "continue", "crate", "dyn", "else", "enum",
        "extern", "false", "fn", "for", "if", "impl", "in", "let", "loop", "match", "mod",
        "move", "mut", "pub", "ref", "return", "static", "struct", "trait", "true",
        "type", "unsafe", "use", "where", "while", "abstract", "become", "box", "do",
        "final", "gen", "macro", "override", "priv", "try", "typeof", "unsized", "virtual", "yield",
    }
)  # fmt: skip

# Keywords that cannot be raw identifiers either
_NON_RAW_KEYWORDS = frozenset({"crate", "self", "Self", "super"})

_INTEGER_TYPES = {
    ("int", False): "i32",
    ("int", True): "u32",
    ("long", False): "i64",
    ("long", True): "u64",
    ("long long", False): "i64",
    ("long long", True): "u64",
}
_FLOAT_TYPES = {"float": "f32", "double": "f64", "long double": "f64"}

_CHAR_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t", "\0": "\\0"}


def _escape(value: str, quote: str) -> str:
    result: list[str] = []
    for char in value:
        if char in _CHAR_ESCAPES:
            result.append(_CHAR_ESCAPES[char])
        elif char == quote:
            result.append(f"\\{char}")
        elif not char.isprintable() or 0xD800 <= ord(char) <= 0xDFFF:
            result.append(f"\\u{{{ord(char):x}}}")
        else:
            result.append(char)
    return "".join(result)


class RustTarget(Target):
    """Rust ``pub const`` declarations."""

    name = "rust"
    description = "Rust pub const items"
    comment_prefix = "//"
    reserved = RUST_KEYWORDS | _NON_RAW_KEYWORDS

    def type_name(self, ctype: CType) -> str:
        if ctype == STRING_TYPE:
            return "&'static str"
        if ctype == CHAR_TYPE:
            return "char"
        if ctype.is_floating:
            return _FLOAT_TYPES[ctype.name]
        return _INTEGER_TYPES[(ctype.name, ctype.is_unsigned)]

    def declaration(self, name: str, ctype: CType, initializer: str) -> str:
        return f"pub const {name}: {self.type_name(ctype)} = {initializer};"

    def escape_identifier(self, name: str) -> str:
        if name in _NON_RAW_KEYWORDS:
            return f"{name}_"
        return f"r#{name}"

    def render_char(self, value: str) -> str:
        return f"'{_escape(value, chr(39))}'"

    def render_string(self, value: str) -> str:
        return f'"{_escape(value, chr(34))}"'

    def render_reference(self, name: str, ctype: CType, result_type: CType) -> str:
        if ctype == result_type or result_type in (STRING_TYPE, CHAR_TYPE):
            return name
        if ctype == CHAR_TYPE and result_type.is_floating:
            # char only casts to integers
            return f"(({name} as u32) as {self.type_name(result_type)})"
        return f"({name} as {self.type_name(result_type)})"

    def render_limit(self, name: str, value: int, ctype: CType, result_type: CType) -> str:
        if name.endswith("_MAX") and value in (2**31 - 1, 2**32 - 1, 2**63 - 1, 2**64 - 1):
            text = f"{self.type_name(ctype)}::MAX"
        elif name.endswith("_MIN") and value in (-(2**31), -(2**63)):
            text = f"{self.type_name(ctype)}::MIN"
        else:
            return super().render_limit(name, value, ctype, result_type)
        return self.render_reference(text, ctype, result_type)

    def render_operator(self, op: Operator, result_type: CType) -> str:
        if op.op == "~":
            return "!"
        return op.op

    def render_unary(self, op: Operator, operand: tuple[ExprToken, ...], text: str, result_type: CType) -> str:
        if op.op != "-" or not (result_type.is_integer and result_type.is_unsigned):
            return super().render_unary(op, operand, text, result_type)
        # Rust has no unary minus on unsigned integers; C wraps modulo 2**width
        if len(operand) == 1 and isinstance(operand[0], Number) and isinstance(operand[0].literal, Integer):
            return hex(-operand[0].literal.value % 2**result_type.width)
        if len(operand) > 1 and operand[0] != Paren("("):
            text = f"({text})"
        return f"{text}.wrapping_neg()"

    def render_number(self, literal: Integer | Float, result_type: CType) -> str:
        if isinstance(literal, Integer) and result_type.is_floating:
            return f"{literal.magnitude}.0"
        return super().render_number(literal, result_type)


register_target("rust", RustTarget, is_default=True)
