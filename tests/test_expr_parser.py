import pytest

from bendc.expr_parser import ExprParser, Indent, ParseError
from bendc.syntax import (
    Bin,
    Call,
    Chn,
    Comprehension,
    Constructor,
    Eraser,
    Lam,
    Lst,
    MapGet,
    MapInit,
    Num,
    Number,
    Op,
    Str,
    Sup,
    Tup,
    Var,
)


def parse(src, inline=False):
    return ExprParser(src).parse_expr(inline)


def test_variable():
    assert parse("x") == Var("x")


def test_dash_is_part_of_names():
    assert parse("a-b") == Var("a-b")


@pytest.mark.parametrize(
    "src, expected",
    [
        ("42", Num(42, "u24")),
        ("-3", Num(-3, "i24")),
        ("+3", Num(3, "i24")),
        ("1.5", Num(1.5, "f24")),
        ("0x10", Num(0x10, "u24")),
        ("0b101", Num(0b101, "u24")),
        ("1_000", Num(1_000, "u24")),
    ],
)
def test_numbers(src, expected):
    assert parse(src) == Number(expected)


@pytest.mark.parametrize("src", ["12a", "16777216", "-"])
def test_bad_numbers(src):
    with pytest.raises(ParseError):
        parse(src)


def test_precedence_mul_over_add():
    assert parse("a + b * c") == Bin(Op.ADD, Var("a"), Bin(Op.MUL, Var("b"), Var("c")))


def test_left_associative():
    assert parse("a - b - c") == Bin(Op.SUB, Bin(Op.SUB, Var("a"), Var("b")), Var("c"))


def test_pow_binds_tighter_than_mul():
    assert parse("a * b ** c") == Bin(Op.MUL, Var("a"), Bin(Op.POW, Var("b"), Var("c")))


def test_equality():
    assert parse("a == b") == Bin(Op.EQ, Var("a"), Var("b"))


def test_parenthesized_and_tuple():
    assert parse("(a)") == Var("a")
    assert parse("(a, b)") == Tup([Var("a"), Var("b")])


def test_sup_and_maps():
    assert parse("{a, b}") == Sup([Var("a"), Var("b")])
    assert parse("{}") == MapInit([])
    assert parse("{1: a, 2: b}") == MapInit(
        [(Number(Num(1)), Var("a")), (Number(Num(2)), Var("b"))]
    )


def test_lists():
    assert parse("[]") == Lst([])
    assert parse("[1, 2,]") == Lst([Number(Num(1)), Number(Num(2))])


def test_comprehension():
    assert parse("[x for x in xs if x]") == Comprehension(Var("x"), "x", Var("xs"), Var("x"))
    assert parse("[x for x in xs]") == Comprehension(Var("x"), "x", Var("xs"), None)


def test_calls():
    assert parse("f(a, b)") == Call(Var("f"), [Var("a"), Var("b")], [])
    assert parse("f()") == Var("f")
    assert parse("f(a, y=b)") == Call(Var("f"), [Var("a")], [("y", Var("b"))])


def test_positional_after_named_is_error():
    with pytest.raises(ParseError, match="Positional arguments"):
        parse("f(y=b, a)")


def test_equals_in_unnamed_argument():
    with pytest.raises(ParseError, match="Unexpected '='"):
        parse("f(1 = 2)")


def test_map_get():
    assert parse("m[k]") == MapGet("m", Var("k"))


def test_map_get_needs_variable():
    with pytest.raises(ParseError) as info:
        parse("(1)[0]")
    assert info.value.start == 0


def test_constructor():
    assert parse("Point{x: 1, y: 2}") == Constructor(
        "Point", [], [("x", Number(Num(1))), ("y", Number(Num(2)))]
    )


def test_lambda():
    expected = Lam([("x", False), ("y", True)], Var("x"))
    assert parse("lambda x, $y: x") == expected
    assert parse("λx, $y: x") == expected


def test_string_char_symbol():
    assert parse('"hi\\n"') == Str("hi\n")
    assert parse("'a'") == Number(Num(ord("a")))
    assert parse("`A`") == Number(Num(0))


def test_chn_and_eraser():
    assert parse("$x") == Chn("x")
    assert parse("*") == Eraser()


def test_double_underscore_name_rejected():
    with pytest.raises(ParseError, match="__"):
        parse("__x")


def test_inline_does_not_cross_newline():
    assert parse("a +\n b") == Bin(Op.ADD, Var("a"), Var("b"))
    with pytest.raises(ParseError):
        parse("a +\n b", inline=True)


def test_skip_trivia_skips_comments():
    p = ExprParser("  # comment\n  x")
    p.skip_trivia()
    assert p.parse_name() == "x"


def test_skip_trivia_inline_stops_at_newline():
    src = "  # comment\nx"
    p = ExprParser(src)
    p.skip_trivia_inline()
    assert p.index == src.index("\n")


def test_consume_and_try_consume():
    p = ExprParser("  x")
    assert p.try_consume(")") is False
    with pytest.raises(ParseError) as info:
        p.consume(")")
    assert "')'" in info.value.message
    assert p.parse_name() == "x"


def test_try_consume_advances_on_match():
    p = ExprParser(" , y")
    assert p.try_consume(",") is True
    p.skip_trivia()
    assert p.parse_name() == "y"


def test_indent_levels():
    indent = Indent(0)
    indent.enter_level()
    assert indent.value == 2
    indent.exit_level()
    assert indent == Indent(0)


def test_indent_eof_is_unchanged():
    indent = Indent(None)
    indent.enter_level()
    assert indent == Indent(None)