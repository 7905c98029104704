import pytest

from bendc.expr_parser import Indent, ParseError
from bendc.lowering import (
    Book,
    FanKind,
    LoweringError,
    PatFan,
    PatVar,
    Tag,
    TApp,
    TLet,
    TNum,
    TRef,
    TVar,
)
from bendc.parser import PyParser
from bendc.syntax import (
    Ask,
    Assign,
    Bend,
    Bin,
    Call,
    ChnPat,
    Constructor,
    CtrField,
    Do,
    EraserPat,
    Fold,
    If,
    InPlace,
    InPlaceOp,
    MapSetPat,
    Match,
    Num,
    Number,
    Op,
    Open,
    Return,
    SupPat,
    Switch,
    TupPat,
    Use,
    Var,
    VarPat,
    Variant,
)


def _after_keyword(text, keyword):
    parser = PyParser(text)
    parser.index = len(keyword)
    return parser


def parse_def(text):
    return _after_keyword(text, "def").parse_def(Indent(0))


def parse_type(text):
    return _after_keyword(text, "type").parse_type(Indent(0))


def parse_object(text):
    return _after_keyword(text, "object").parse_object(Indent(0))


def test_simple_return():
    definition, nxt = parse_def("def main():\n  return 1\n")
    assert definition.name == "main"
    assert definition.params == []
    assert definition.body == Return(Number(Num(1)))
    assert nxt == Indent(None)


def test_params_and_assignment_chain():
    definition, _ = parse_def("def f(x, y):\n  z = x + y\n  return z\n")
    assert definition.params == ["x", "y"]
    assert definition.body == Assign(
        VarPat("z"), Bin(Op.ADD, Var("x"), Var("y")), Return(Var("z"))
    )


def test_next_indent_is_reported():
    definition, nxt = parse_def("def f():\n  return 1\ndef g():\n  return 2\n")
    assert definition.body == Return(Number(Num(1)))
    assert nxt == Indent(0)


def test_if_else():
    text = "def f(x):\n  if x:\n    return 1\n  else:\n    return 0\n"
    definition, _ = parse_def(text)
    assert definition.body == If(Var("x"), Return(Number(Num(1))), Return(Number(Num(0))), None)


def test_if_with_following_statement():
    text = "def f(x):\n  if x:\n    y = 1\n  else:\n    y = 0\n  return y\n"
    definition, _ = parse_def(text)
    body = definition.body
    assert isinstance(body, If)
    assert body.then == Assign(VarPat("y"), Number(Num(1)), None)
    assert body.nxt == Return(Var("y"))


def test_match_arms():
    text = (
        "def f(x):\n  match x:\n    case List/Nil:\n      return 0\n"
        "    case _:\n      return 1\n"
    )
    definition, _ = parse_def(text)
    body = definition.body
    assert isinstance(body, Match)
    assert body.arg == Var("x")
    assert body.bind == "x"
    assert [arm.lft for arm in body.arms] == ["List/Nil", None]
    assert body.arms[1].rgt == Return(Number(Num(1)))
    assert body.nxt is None


def test_match_on_expression_gets_default_bind():
    text = "def f(x):\n  match x + 1:\n    case _:\n      return 0\n"
    definition, _ = parse_def(text)
    assert definition.body.bind == "%arg"
    assert definition.body.arg == Bin(Op.ADD, Var("x"), Number(Num(1)))


def test_match_with_named_argument():
    text = "def f(x):\n  match y = x:\n    case _:\n      return y\n"
    definition, _ = parse_def(text)
    assert definition.body.bind == "y"
    assert definition.body.arg == Var("x")


def test_switch():
    text = "def f(n):\n  switch n:\n    case 0:\n      return 1\n    case _:\n      return 2\n"
    definition, _ = parse_def(text)
    body = definition.body
    assert isinstance(body, Switch)
    assert body.bind == "n"
    assert body.arms == [Return(Number(Num(1))), Return(Number(Num(2)))]


def test_switch_must_start_at_zero():
    text = "def f(n):\n  switch n:\n    case 1:\n      return 1\n    case _:\n      return 2\n"
    with pytest.raises(ParseError) as err:
        parse_def(text)
    assert "case 0" in err.value.message


def test_switch_cases_in_order():
    text = (
        "def f(n):\n  switch n:\n    case 0:\n      return 1\n"
        "    case 2:\n      return 2\n    case _:\n      return 3\n"
    )
    with pytest.raises(ParseError) as err:
        parse_def(text)
    assert "case 1" in err.value.message


def test_fold_with_state():
    text = (
        "def f(xs):\n  fold xs with a, b:\n    case List/Nil:\n      return a\n"
        "    case List/Cons:\n      return b\n"
    )
    definition, _ = parse_def(text)
    body = definition.body
    assert isinstance(body, Fold)
    assert body.with_ == ["a", "b"]
    assert [arm.lft for arm in body.arms] == ["List/Nil", "List/Cons"]


def test_bend():
    text = (
        "def f():\n  bend x = 0:\n    when x < 3:\n      y = fork(x + 1)\n"
        "    else:\n      y = 0\n  return y\n"
    )
    definition, _ = parse_def(text)
    body = definition.body
    assert isinstance(body, Bend)
    assert body.bind == ["x"]
    assert body.init == [Number(Num(0))]
    assert body.cond == Bin(Op.LT, Var("x"), Number(Num(3)))
    assert body.step == Assign(
        VarPat("y"), Call(Var("fork"), [Bin(Op.ADD, Var("x"), Number(Num(1)))], []), None
    )
    assert body.nxt == Return(Var("y"))


def test_do_with_ask():
    definition, _ = parse_def("def f():\n  do IO:\n    x <- get\n    return x\n")
    assert definition.body == Do("IO", Ask(VarPat("x"), Var("get"), Return(Var("x"))), None)


def test_in_place():
    definition, _ = parse_def("def f(x):\n  x += 1\n  return x\n")
    assert definition.body == InPlace(InPlaceOp.ADD, "x", Number(Num(1)), Return(Var("x")))


def test_open_and_use():
    text = "def f(p):\n  open Point: p\n  use z = 1\n  return z\n"
    definition, _ = parse_def(text)
    assert definition.body == Open("Point", "p", Use("z", Number(Num(1)), Return(Var("z"))))


def test_map_set_statement():
    definition, _ = parse_def("def f(m):\n  m[1] = 2\n  return m\n")
    assert definition.body == Assign(MapSetPat("m", Number(Num(1))), Number(Num(2)), Return(Var("m")))


@pytest.mark.parametrize(
    "text, expected",
    [
        ("*", EraserPat()),
        ("x", VarPat("x")),
        ("(a)", VarPat("a")),
        ("(a, b)", TupPat([VarPat("a"), VarPat("b")])),
        ("{a, b}", SupPat([VarPat("a"), VarPat("b")])),
        ("$c", ChnPat("c")),
        ("(a, (b, *))", TupPat([VarPat("a"), TupPat([VarPat("b"), EraserPat()])])),
    ],
)
def test_assign_patterns(text, expected):
    assert PyParser(text).parse_assign_pattern() == expected


def test_sup_pattern_needs_two_elements():
    with pytest.raises(ParseError):
        PyParser("{a}").parse_assign_pattern()


def test_bare_name_is_not_a_statement():
    with pytest.raises(ParseError) as err:
        parse_def("def f(x):\n  x\n  return x\n")
    assert "statement" in err.value.message


def test_indentation_error_in_if():
    text = "def f(x):\n  if x:\n    return 1\n   else:\n    return 0\n"
    with pytest.raises(ParseError) as err:
        parse_def(text)
    assert err.value.message == "Indentation error. Expected 2 spaces, got 3."


def test_def_must_be_at_line_start():
    parser = _after_keyword("def f():\n  return 1\n", "def")
    with pytest.raises(ParseError) as err:
        parser.parse_def(Indent(2))
    assert err.value.message == (
        "Indentation error. Functions defined with 'def' must be at the start of the line."
    )


def test_parse_type():
    typedef, nxt = parse_type("type Tree:\n  Node { ~left, ~right }\n  Leaf { value }\n")
    assert typedef.name == "Tree"
    assert typedef.variants == [
        Variant("Tree/Node", [CtrField("left", True), CtrField("right", True)]),
        Variant("Tree/Leaf", [CtrField("value", False)]),
    ]
    assert nxt == Indent(None)


def test_parse_enum_variant_without_fields():
    assert PyParser("Nil").parse_enum_variant("List") == Variant("List/Nil", [])


def test_parse_object():
    obj, nxt = parse_object("object Point { x, y }\n")
    assert obj == Variant("Point", [CtrField("x"), CtrField("y")])
    assert nxt == Indent(None)


def test_add_type_registers_constructors():
    typedef, _ = parse_type("type Tree:\n  Node { ~left, ~right }\n  Leaf { value }\n")
    parser = PyParser("")
    book = Book()
    parser.add_type(typedef, book, 0, 0, False)
    assert book.ctrs == {"Tree/Node": "Tree", "Tree/Leaf": "Tree"}
    assert book.adts["Tree"].ctrs["Tree/Leaf"] == [CtrField("value")]
    with pytest.raises(ParseError) as err:
        parser.add_type(typedef, book, 0, 0, False)
    assert err.value.message == "Redefinition of type 'Tree'."


def test_add_object_and_constructor_kwargs():
    obj, _ = parse_object("object Point { x, y }\n")
    parser = PyParser("")
    book = Book()
    parser.add_object(obj, book, 0, 0, False)
    assert book.ctrs == {"Point": "Point"}

    definition, _ = parse_def("def f():\n  return Point { y: 2, x: 1 }\n")
    assert definition.body == Return(
        Constructor("Point", [], [("y", Number(Num(2))), ("x", Number(Num(1)))])
    )
    parser.add_def(definition, book, 0, 0, False)
    body = book.defs["f"].rules[0].body
    assert body == TApp(TApp(TRef("Point"), TNum(Num(1))), TNum(Num(2)))


def test_add_def_and_redefinition():
    definition, _ = parse_def("def main():\n  return 1\n")
    parser = PyParser("")
    book = Book()
    parser.add_def(definition, book, 0, 0, True)
    fun_def = book.defs["main"]
    assert fun_def.builtin is True
    assert fun_def.rules[0].body == TNum(Num(1))
    with pytest.raises(ParseError) as err:
        parser.add_def(definition, book, 0, 0, False)
    assert err.value.message == "Redefinition of function 'main'."


def test_add_def_expands_map_gets():
    definition, _ = parse_def("def f(m):\n  return m[0]\n")
    book = Book()
    PyParser("").add_def(definition, book, 0, 0, False)
    rule = book.defs["f"].rules[0]
    assert rule.pats == [PatVar("m")]
    assert rule.body == TLet(
        PatFan(FanKind.TUP, Tag.STATIC, [PatVar("map/get%0"), PatVar("m")]),
        TApp(TApp(TVar("Map/get"), TVar("m")), TNum(Num(0))),
        TVar("map/get%0"),
    )


def test_add_def_without_return_fails():
    definition, _ = parse_def("def f():\n  x = 1\n")
    with pytest.raises(LoweringError) as err:
        PyParser("").add_def(definition, Book(), 0, 0, False)
    assert str(err.value) == "Function 'f' doesn't end with a return statement"


def test_def_name_clashing_with_constructor():
    obj, _ = parse_object("object Point { x }\n")
    parser = PyParser("")
    book = Book()
    parser.add_object(obj, book, 0, 0, False)
    definition, _ = parse_def("def Point():\n  return 1\n")
    with pytest.raises(ParseError) as err:
        parser.add_def(definition, book, 0, 0, False)
    assert err.value.message == "Redefinition of constructor 'Point'."