"""Tests for classification of macro bodies into value kinds."""

import pytest

from cmacros.classifier import classify, parse_float, parse_integer
from cmacros.ir import CType, Char, Expr, Float, Ident, Integer, Number, Opaque, Operator, Paren, Str


class TestIntegerLiterals:
    """Test classification of integer literals."""

    def test_hex(self, classifier) -> None:
        """0x10 is an Integer with radix 16."""
        value = classifier.classify("0x10")
        assert value == Integer("", 16, "10", "")
        assert value.value == 16

    def test_decimal(self, classifier) -> None:
        assert classifier.classify("100") == Integer("", 10, "100", "")

    def test_octal(self, classifier) -> None:
        value = classifier.classify("0755")
        assert value == Integer("", 8, "755", "")
        assert value.value == 0o755

    def test_zero_is_decimal(self, classifier) -> None:
        assert classifier.classify("0") == Integer("", 10, "0", "")

    def test_binary(self, classifier) -> None:
        assert classifier.classify("0b101").value == 5

    def test_suffix(self, classifier) -> None:
        value = classifier.classify("100UL")
        assert value == Integer("", 10, "100", "UL")
        assert value.c_type == CType("long", ("unsigned",))

    def test_negative(self, classifier) -> None:
        """A unary minus before a literal is part of the literal."""
        value = classifier.classify("-1")
        assert value == Integer("-", 10, "1", "")
        assert value.value == -1

    def test_redundant_parentheses(self, classifier) -> None:
        assert classifier.classify("(5)") == Integer("", 10, "5", "")
        assert classifier.classify("((5))") == Integer("", 10, "5", "")

    def test_parenthesized_negative(self, classifier) -> None:
        assert classifier.classify("(-100)").value == -100

    def test_unary_plus(self, classifier) -> None:
        assert classifier.classify("+3") == Integer("", 10, "3", "")

    def test_invalid_octal_is_opaque(self, classifier) -> None:
        assert classifier.classify("09") == Opaque("09")


class TestFloatLiterals:
    """Test classification of floating-point literals."""

    def test_single_precision(self, classifier) -> None:
        """3.14f is a single precision Float."""
        value = classifier.classify("3.14f")
        assert value == Float("3.14", "f")
        assert value.c_type == CType("float")

    def test_double(self, classifier) -> None:
        assert classifier.classify("2.5").c_type == CType("double")

    def test_scientific(self, classifier) -> None:
        assert classifier.classify("1e10") == Float("1e10", "")

    def test_long_double(self, classifier) -> None:
        assert classifier.classify("1.5L").c_type == CType("long double")

    def test_negative(self, classifier) -> None:
        value = classifier.classify("-2.5")
        assert value == Float("-2.5", "")
        assert value.value == -2.5

    def test_hex_float(self, classifier) -> None:
        value = classifier.classify("0x1.8p3")
        assert isinstance(value, Float)
        assert value.value == 12.0


class TestCharAndStringLiterals:
    """Test classification of char and string literals."""

    def test_string(self, classifier) -> None:
        assert classifier.classify('"hi"') == Str("hi")

    def test_string_escapes_kept_verbatim(self, classifier) -> None:
        value = classifier.classify(r'"a\tb"')
        assert value == Str(r"a\tb")
        assert value.value == "a\tb"

    def test_empty_string(self, classifier) -> None:
        assert classifier.classify('""') == Str("")

    def test_char(self, classifier) -> None:
        assert classifier.classify("'a'") == Char("a")

    def test_escaped_char(self, classifier) -> None:
        value = classifier.classify(r"'\n'")
        assert value == Char(r"\n")
        assert value.value == "\n"

    def test_wide_string_is_opaque(self, classifier) -> None:
        assert classifier.classify('L"wide"') == Opaque('L"wide"')

    def test_string_concatenation_is_opaque(self, classifier) -> None:
        assert classifier.classify('"a" "b"') == Opaque('"a" "b"')

    def test_unterminated_string_is_opaque(self, classifier) -> None:
        assert isinstance(classifier.classify('"abc'), Opaque)


class TestExpressions:
    """Test classification of arithmetic expressions."""

    def test_shift_with_identifier(self, classifier) -> None:
        """(1 << A) is an Expr referencing A."""
        value = classifier.classify("(1 << A)")
        assert value == Expr(
            (
                Paren("("),
                Number(Integer("", 10, "1", "")),
                Operator("<<"),
                Ident("A"),
                Paren(")"),
            )
        )
        assert value.identifiers == ("A",)

    def test_single_identifier(self, classifier) -> None:
        """A lone identifier is an alias expression."""
        assert classifier.classify("OTHER") == Expr((Ident("OTHER"),))

    def test_identifiers_in_order(self, classifier) -> None:
        value = classifier.classify("B + A * B")
        assert value.identifiers == ("B", "A")

    def test_unary_operators(self, classifier) -> None:
        value = classifier.classify("~0")
        assert value == Expr((Operator("~", unary=True), Number(Integer("", 10, "0", ""))))

    def test_negated_identifier(self, classifier) -> None:
        value = classifier.classify("-A")
        assert value == Expr((Operator("-", unary=True), Ident("A")))

    def test_binary_minus(self, classifier) -> None:
        value = classifier.classify("A - 1")
        assert value.tokens[1] == Operator("-")

    def test_all_operators(self, classifier) -> None:
        value = classifier.classify("A + B - C * D / E % F & G | H ^ I << J >> K")
        ops = [token.op for token in value.tokens if isinstance(token, Operator)]
        assert ops == ["+", "-", "*", "/", "%", "&", "|", "^", "<<", ">>"]

    def test_mixed_literals(self, classifier) -> None:
        value = classifier.classify("(1.5 * 0x10)")
        assert [token.literal for token in value.tokens if isinstance(token, Number)] == [
            Float("1.5", ""),
            Integer("", 16, "10", ""),
        ]

    def test_nested_parentheses(self, classifier) -> None:
        assert isinstance(classifier.classify("((A + 1) * (B - 2))"), Expr)

    def test_sample_header_flags(self, classifier) -> None:
        assert isinstance(classifier.classify("(1 << 4) | (1 << 2)"), Expr)


class TestOpaque:
    """Test bodies that are not literals or plain expressions."""

    @pytest.mark.parametrize(
        "body",
        [
            "foo(1)",
            "(int)x",
            "(T)x",
            "a ? b : c",
            "a == b",
            "a = 1",
            "a, b",
            "x;",
            "sizeof(int)",
            "do { } while (0)",
            "A ~ B",
            "(A",
            "A)",
            "A +",
            "1 2",
            "#x",
            "a++",
            "@",
            "*",
        ],
    )
    def test_opaque(self, classifier, body) -> None:
        assert classifier.classify(body) == Opaque(body)

    @pytest.mark.parametrize("body", ["(size_t)-1", "((DWORD)-1)", "(T)+1", "(A) - 1"])
    def test_cast_of_signed_operand(self, classifier, body) -> None:
        """A parenthesized identifier followed by + or - reads as a cast."""
        assert classifier.classify(body) == Opaque(body)

    def test_parenthesized_group_before_minus(self, classifier) -> None:
        assert isinstance(classifier.classify("(A + 1) - 2"), Expr)
        assert isinstance(classifier.classify("(A) * 2"), Expr)

    def test_empty(self, classifier) -> None:
        """An empty body is Opaque with empty text."""
        assert classifier.classify("") == Opaque("")
        assert classifier.classify("   ") == Opaque("")

    def test_non_string(self, classifier) -> None:
        with pytest.raises(TypeError):
            classifier.classify(5)


class TestClassifier:
    """Test the classifier object and the module-level helpers."""

    def test_tokenize_rejects_bad_input(self, classifier) -> None:
        assert classifier.tokenize("@") is None

    def test_tokenize(self, classifier) -> None:
        tokens = classifier.tokenize("A + 1")
        assert [token.type for token in tokens] == ["ID", "PLUS", "INT_CONST_DEC"]

    def test_recovers_after_error(self, classifier) -> None:
        """A lexer error does not affect later bodies."""
        assert isinstance(classifier.classify('"abc'), Opaque)
        assert classifier.classify("7") == Integer("", 10, "7", "")

    def test_module_classify(self, classifier) -> None:
        for body in ["0x10", "3.14f", '"hi"', "(1 << A)", "foo(1)"]:
            assert classify(body) == classifier.classify(body)

    def test_parse_integer(self) -> None:
        assert parse_integer("0xFFull") == Integer("", 16, "FF", "ull")
        assert parse_integer("12", "-") == Integer("-", 10, "12", "")

    def test_parse_integer_invalid(self) -> None:
        with pytest.raises(ValueError):
            parse_integer("0x")

    def test_parse_float(self) -> None:
        assert parse_float("1.5F") == Float("1.5", "F")
        assert parse_float("2e3", "-") == Float("-2e3", "")
