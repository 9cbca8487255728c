"""Shared behaviour for target languages.

A :class:`Target` turns classified macro values into declarations of one
output language. Subclasses provide the language-specific pieces (type
names, declaration syntax, literal escaping, reserved words); rendering of
expressions and integer radixes is shared here.
"""

from typing import (
    Callable,
    Optional,
    Union,
)

from cmacros.ir import (
    INT_TYPE,
    CType,
    ExprToken,
    Float,
    Ident,
    Integer,
    Number,
    Operator,
    Paren,
)

# Limits from <limits.h> recognized in expressions: name -> (value, type)
C_LIMITS: dict[str, tuple[int, CType]] = {
    "CHAR_BIT": (8, INT_TYPE),
    "SCHAR_MIN": (-128, INT_TYPE),
    "SCHAR_MAX": (127, INT_TYPE),
    "UCHAR_MAX": (255, INT_TYPE),
    "SHRT_MIN": (-(2**15), INT_TYPE),
    "SHRT_MAX": (2**15 - 1, INT_TYPE),
    "USHRT_MAX": (2**16 - 1, INT_TYPE),
    "INT_MIN": (-(2**31), INT_TYPE),
    "INT_MAX": (2**31 - 1, INT_TYPE),
    "UINT_MAX": (2**32 - 1, CType("int", ("unsigned",))),
    "LONG_MIN": (-(2**63), CType("long")),
    "LONG_MAX": (2**63 - 1, CType("long")),
    "ULONG_MAX": (2**64 - 1, CType("long", ("unsigned",))),
    "LLONG_MIN": (-(2**63), CType("long long")),
    "LLONG_MAX": (2**63 - 1, CType("long long")),
    "ULLONG_MAX": (2**64 - 1, CType("long long", ("unsigned",))),
}


class Target:
    """Base class for target languages.

    :cvar name: Registry name of the target.
    :cvar description: One-line description for ``--list-targets``.
    :cvar comment_prefix: Line comment marker of the language.
    :cvar reserved: Words that cannot be used as identifiers.
    """

    name = ""
    description = ""
    comment_prefix = "#"
    reserved: frozenset[str] = frozenset()

    # -- Language specifics, overridden by subclasses -------------------------

    def type_name(self, ctype: CType) -> str:
        """Name of the target type used for a constant of C type ``ctype``."""
        raise NotImplementedError

    def declaration(self, name: str, ctype: CType, initializer: str) -> str:
        """A complete constant declaration."""
        raise NotImplementedError

    def render_char(self, value: str) -> str:
        raise NotImplementedError

    def render_string(self, value: str) -> str:
        raise NotImplementedError

    def escape_identifier(self, name: str) -> str:
        """Spelling of a reserved word used as an identifier."""
        return f"{name}_"

    def render_reference(self, name: str, ctype: CType, result_type: CType) -> str:
        """Spelling of a reference to another constant inside an expression."""
        return name

    def render_limit(self, name: str, value: int, ctype: CType, result_type: CType) -> str:
        """Spelling of a ``<limits.h>`` constant inside an expression."""
        return f"({value})" if value < 0 else str(value)

    def render_operator(self, op: Operator, result_type: CType) -> str:
        return op.op

    # -- Shared rendering -----------------------------------------------------

    def identifier(self, name: str) -> str:
        if name in self.reserved:
            return self.escape_identifier(name)
        return name

    def comment(self, text: str) -> str:
        return f"{self.comment_prefix} {text}"

    @property
    def builtins(self) -> dict[str, tuple[int, CType]]:
        """Identifiers usable in expressions without a macro definition."""
        return C_LIMITS

    def render_integer(self, literal: Integer, ctype: Optional[CType] = None) -> str:
        """Render an integer literal, keeping its radix.

        Octal is written with ``0o`` and a negated unsigned literal wraps
        around modulo the width of its type, as in C.
        """
        ctype = ctype or literal.c_type
        if literal.sign == "-" and ctype.is_integer and ctype.is_unsigned:
            return hex(literal.value % 2**ctype.width)

        prefix = {16: "0x", 8: "0o", 2: "0b"}.get(literal.radix, "")
        digits = literal.digits if literal.radix != 10 else str(int(literal.digits))
        return f"{literal.sign}{prefix}{digits}"

    def render_float(self, literal: Float) -> str:
        """Render a float literal in plain decimal/scientific notation."""
        if literal.is_hex:
            return repr(literal.value)
        sign = "-" if literal.text.startswith("-") else ""
        text = literal.text.lstrip("+-")
        mantissa, _, exponent = text.lower().partition("e")
        if mantissa.startswith("."):
            mantissa = "0" + mantissa
        if mantissa.endswith("."):
            mantissa += "0"
        if "." not in mantissa and not exponent:
            mantissa += ".0"
        return f"{sign}{mantissa}" + (f"e{exponent}" if exponent else "")

    def render_number(self, literal: Union[Integer, Float], result_type: CType) -> str:
        """Render a literal appearing inside an expression."""
        if isinstance(literal, Float):
            return self.render_float(literal)
        return self.render_integer(literal)

    def render_unary(self, op: Operator, operand: tuple[ExprToken, ...], text: str, result_type: CType) -> str:
        """Spelling of a unary operator applied to an operand.

        :param operand: Tokens of the operand: further unary operators then a
            literal, an identifier or a parenthesized group.
        :param text: The operand already rendered.
        """
        return f"{self.render_operator(op, result_type)}{text}"

    def render_expression(
        self,
        tokens: tuple[ExprToken, ...],
        result_type: CType,
        reference: Callable[[str], str],
    ) -> str:
        """Re-render expression tokens in target syntax.

        :param tokens: The expression tokens.
        :param result_type: C type of the whole expression.
        :param reference: Maps an identifier to its target spelling.
        """
        parts: list[str] = []
        previous: Optional[ExprToken] = None
        index = 0
        while index < len(tokens):
            token = tokens[index]
            end = index + 1
            if isinstance(token, Operator) and token.unary:
                end = _operand_end(tokens, end)
                operand = tokens[index + 1 : end]
                text = self.render_unary(
                    token, operand, self.render_expression(operand, result_type, reference), result_type
                )
            elif isinstance(token, Ident):
                text = reference(token.name)
            elif isinstance(token, Number):
                text = self.render_number(token.literal, result_type)
            elif isinstance(token, Operator):
                text = self.render_operator(token, result_type)
            else:
                text = token.text

            glued = previous is None or previous == Paren("(") or token == Paren(")")
            if not glued:
                parts.append(" ")
            parts.append(text)
            previous = tokens[end - 1]
            index = end
        return "".join(parts)

    def preamble(self, source_name: Optional[str] = None) -> list[str]:
        """Lines written before the declarations."""
        if source_name:
            return [self.comment(f"Constants translated from {source_name}"), ""]
        return []


def _operand_end(tokens: tuple[ExprToken, ...], start: int) -> int:
    """Index just past the operand of a unary operator starting at ``start``."""
    index = start
    while isinstance(tokens[index], Operator):
        index += 1
    if tokens[index] != Paren("("):
        return index + 1
    depth = 0
    for index in range(index, len(tokens)):
        if tokens[index] == Paren("("):
            depth += 1
        elif tokens[index] == Paren(")"):
            depth -= 1
            if depth == 0:
                break
    return index + 1
