"""Classification of macro bodies into value kinds.

The body is tokenized with pycparser's C lexer, so literal and operator
rules are exactly the C ones, and the token sequence is then matched against
a short list of shapes. The first match wins:

* empty body - :class:`~cmacros.ir.Opaque` with empty text
* a single numeric literal, optionally negated or wrapped in redundant
  parentheses (``5``, ``-1``, ``(0x10)``) - :class:`~cmacros.ir.Integer` or
  :class:`~cmacros.ir.Float`
* a single plain char or string literal - :class:`~cmacros.ir.Char` or
  :class:`~cmacros.ir.Str`
* a well-formed expression over identifiers, numeric literals, the
  ``+ - * / % & | ^ ~ << >>`` operators and parentheses -
  :class:`~cmacros.ir.Expr`
* anything else (calls, casts, ``?:``, comparisons, ``sizeof``, string
  concatenation, statements) - :class:`~cmacros.ir.Opaque`

Classification never fails; :class:`~cmacros.ir.Opaque` is the catch-all.

Example
-------
::

    from cmacros.classifier import classify

    classify("0x10")        # Integer(sign='', radix=16, digits='10')
    classify("(1 << A)")    # Expr(...)
    classify("foo(1)")      # Opaque('foo(1)')
"""

import re
from typing import (
    Optional,
    Union,
)

from pycparser.c_lexer import (
    CLexer,
)
from pycparser.ply.lex import (
    LexToken,
)

from cmacros.ir import (
    Char,
    ExprToken,
    Expr,
    Float,
    Ident,
    Integer,
    Number,
    Opaque,
    Operator,
    Paren,
    Str,
    ValueKind,
)

# pycparser token types that may appear in an expression
_OPERATORS = {
    "PLUS": "+",
    "MINUS": "-",
    "TIMES": "*",
    "DIVIDE": "/",
    "MOD": "%",
    "AND": "&",
    "OR": "|",
    "XOR": "^",
    "NOT": "~",
    "LSHIFT": "<<",
    "RSHIFT": ">>",
}
_UNARY_OPERATORS = {"+", "-", "~"}
_PREFIX_ONLY_OPERATORS = {"~"}

_INTEGER_TOKENS = {"INT_CONST_DEC", "INT_CONST_OCT", "INT_CONST_HEX", "INT_CONST_BIN"}
_FLOAT_TOKENS = {"FLOAT_CONST", "HEX_FLOAT_CONST"}

_INTEGER_RE = re.compile(r"(0[xX]|0[bB])?([0-9A-Fa-f]*?)([uUlL]*)\Z")


def _squash(text: str) -> str:
    return "".join(text.split())


def parse_integer(text: str, sign: str = "") -> Integer:
    """Split an integer literal into radix, digits and suffix.

    :param text: Literal as written, e.g. ``"0xFFUL"`` or ``"0755"``.
    :param sign: ``"-"`` if the literal is negated.
    """
    match = _INTEGER_RE.match(text)
    if match is None or not match.group(2):
        raise ValueError(f"Invalid integer literal: {text!r}")
    prefix, digits, suffix = match.groups()

    if prefix:
        radix = 16 if prefix.lower() == "0x" else 2
    elif len(digits) > 1 and digits.startswith("0"):
        radix = 8
        digits = digits[1:]
    else:
        radix = 10
    return Integer(sign=sign, radix=radix, digits=digits, suffix=suffix)


def parse_float(text: str, sign: str = "") -> Float:
    """Split a floating-point literal into text and suffix."""
    suffix = text[-1] if text[-1] in "fFlL" else ""
    return Float(text=sign + text[: len(text) - len(suffix)], suffix=suffix)


def _numeric_literal(token: LexToken, sign: str = "") -> Optional[Union[Integer, Float]]:
    if token.type in _INTEGER_TOKENS:
        return parse_integer(token.value, sign)
    if token.type in _FLOAT_TOKENS:
        return parse_float(token.value, sign)
    return None


def _closing_paren(tokens: list[LexToken]) -> int:
    """Index of the parenthesis closing ``tokens[0]``, or -1."""
    depth = 0
    for index, token in enumerate(tokens):
        if token.type == "LPAREN":
            depth += 1
        elif token.type == "RPAREN":
            depth -= 1
            if depth == 0:
                return index
    return -1


def _is_cast(result: list[ExprToken]) -> bool:
    """Whether the expression so far ends with a parenthesized identifier."""
    return len(result) >= 3 and result[-3] == Paren("(") and isinstance(result[-2], Ident) and result[-1] == Paren(")")


class MacroClassifier:
    """Classifies macro bodies into :data:`~cmacros.ir.ValueKind` values.

    Building the C lexer is the expensive part, so one instance should be
    reused for many bodies. An instance holds lexer state and must not be
    shared between threads; :func:`classify` creates a fresh one per call.

    Example
    -------
    ::

        classifier = MacroClassifier()
        kinds = [classifier.classify(macro.body) for macro in macros]
    """

    def __init__(self) -> None:
        self._errors: list[str] = []
        self._lexer = CLexer(
            error_func=self._on_lex_error,
            on_lbrace_func=lambda: None,
            on_rbrace_func=lambda: None,
            type_lookup_func=lambda name: False,
        )
        self._lexer.build(optimize=False)

    def _on_lex_error(self, msg: str, line: int, column: int) -> None:
        self._errors.append(f"{msg} (column {column})")

    def tokenize(self, text: str) -> Optional[list[LexToken]]:
        """Tokenize ``text`` with the C lexer.

        :returns: The tokens, or None if the lexer rejected part of the text
            (illegal characters, bad escapes, preprocessor lines).
        """
        self._errors = []
        self._lexer.lexer.begin("INITIAL")
        self._lexer.reset_lineno()
        self._lexer.input(text)
        tokens = list(iter(self._lexer.token, None))
        if self._errors:
            return None
        # Preprocessor line states swallow text without producing tokens
        if "".join(_squash(token.value) for token in tokens) != _squash(text):
            return None
        return tokens

    def classify(self, body: str) -> ValueKind:
        """Classify one macro body.

        :param body: The macro replacement text.
        :returns: The value kind; :class:`~cmacros.ir.Opaque` when nothing
            else matches.
        :raises TypeError: If ``body`` is not a string.
        """
        if not isinstance(body, str):
            raise TypeError(f"Expected macro body as str, got {type(body).__name__}")

        text = body.strip()
        if not text:
            return Opaque("")

        tokens = self.tokenize(text)
        if not tokens:
            return Opaque(text)

        literal = self._literal(tokens)
        if literal is not None:
            return literal

        expr_tokens = self._expression(tokens)
        if expr_tokens is None:
            return Opaque(text)
        return Expr(expr_tokens)

    def _literal(self, tokens: list[LexToken]) -> Optional[ValueKind]:
        """Match a single literal, allowing redundant parentheses and a sign."""
        while len(tokens) > 2 and tokens[0].type == "LPAREN" and _closing_paren(tokens) == len(tokens) - 1:
            tokens = tokens[1:-1]

        if len(tokens) == 2 and tokens[0].type in ("MINUS", "PLUS"):
            sign = "-" if tokens[0].type == "MINUS" else ""
            return _numeric_literal(tokens[1], sign)
        if len(tokens) != 1:
            return None

        token = tokens[0]
        numeric = _numeric_literal(token)
        if numeric is not None:
            return numeric
        if token.type == "CHAR_CONST":
            return Char(token.value[1:-1])
        if token.type == "STRING_LITERAL":
            return Str(token.value[1:-1])
        return None

    def _expression(self, tokens: list[LexToken]) -> Optional[tuple[ExprToken, ...]]:
        """Convert tokens to expression tokens, or None if the shape is not a
        plain arithmetic expression.

        Operands and operators must alternate, so a call (``f(x)``), a cast
        (``(T)x``) or two adjacent operands are rejected. A parenthesized lone
        identifier followed by ``+`` or ``-`` is read as a cast of a signed
        operand (``(size_t)-1``), so ``(A) - 1`` is rejected too.
        """
        result: list[ExprToken] = []
        depth = 0
        expect_operand = True

        for token in tokens:
            if token.type == "LPAREN":
                if not expect_operand:
                    return None
                depth += 1
                result.append(Paren("("))
            elif token.type == "RPAREN":
                if expect_operand or depth == 0:
                    return None
                depth -= 1
                result.append(Paren(")"))
            elif token.type in _OPERATORS:
                op = _OPERATORS[token.type]
                if expect_operand:
                    if op not in _UNARY_OPERATORS:
                        return None
                    result.append(Operator(op, unary=True))
                else:
                    if op in _PREFIX_ONLY_OPERATORS:
                        return None
                    if op in _UNARY_OPERATORS and _is_cast(result):
                        return None
                    result.append(Operator(op))
                    expect_operand = True
            elif token.type == "ID":
                if not expect_operand:
                    return None
                result.append(Ident(token.value))
                expect_operand = False
            else:
                literal = _numeric_literal(token)
                if literal is None or not expect_operand:
                    return None
                result.append(Number(literal))
                expect_operand = False

        if depth or expect_operand:
            return None
        return tuple(result)


def classify(body: str) -> ValueKind:
    """Classify a macro body.

    Convenience wrapper that builds a new :class:`MacroClassifier` for each
    call. Use a classifier instance directly when classifying many bodies.

    :param body: The macro replacement text.
    :returns: The value kind of ``body``.
    """
    return MacroClassifier().classify(body)
