import pytest

from bendc.lowering import Adt, Book, definition_to_fun
from bendc.order_kwargs import KwargsError, arg_names, order_kwargs
from bendc.syntax import (
    Call,
    Constructor,
    CtrField,
    Definition,
    If,
    Lam,
    Lst,
    Return,
    Var,
)


@pytest.fixture
def book():
    f = definition_to_fun(Definition("f", ["a", "b"], Return(Var("a"))), False)
    return Book(
        defs={"f": f},
        adts={"Pt": Adt({"Pt/New": [CtrField("x"), CtrField("y")]})},
        ctrs={"Pt/New": "Pt"},
    )


def test_arg_names(book):
    assert arg_names("f", book) == ["a", "b"]
    assert arg_names("Pt/New", book) == ["x", "y"]
    assert arg_names("g", book) is None


def test_kwargs_reordered(book):
    c = Call(Var("f"), [], [("b", Var("q")), ("a", Var("p"))])
    d = Definition("main", [], Return(c))
    order_kwargs(d, book)
    assert c.args == [Var("p"), Var("q")]
    assert c.kwargs == []


def test_mixed_positional_and_named(book):
    c = Call(Var("f"), [Var("p")], [("b", Var("q"))])
    order_kwargs(Definition("main", [], Return(c)), book)
    assert c.args == [Var("p"), Var("q")]


def test_constructor_reordered(book):
    c = Constructor("Pt/New", [], [("y", Var("v")), ("x", Var("u"))])
    order_kwargs(Definition("main", [], Return(c)), book)
    assert c.args == [Var("u"), Var("v")]
    assert c.kwargs == []


def test_nested_in_statements(book):
    c = Call(Var("f"), [], [("b", Var("q")), ("a", Var("p"))])
    body = If(Lst([c]), Return(Var("x")), Return(Var("y")))
    order_kwargs(Definition("main", [], body), book)
    assert c.args == [Var("p"), Var("q")]


def test_unknown_constructor(book):
    d = Definition("main", [], Return(Constructor("Nope", [], [])))
    with pytest.raises(KwargsError, match="Constructor 'Nope' not found."):
        order_kwargs(d, book)


def test_wrong_count(book):
    c = Call(Var("f"), [], [("a", Var("p"))])
    with pytest.raises(KwargsError, match="exact number of arguments"):
        order_kwargs(Definition("main", [], Return(c)), book)


def test_missing_named_arg(book):
    c = Call(Var("f"), [], [("a", Var("p")), ("c", Var("q"))])
    with pytest.raises(KwargsError, match="Named arg 'b' is missing."):
        order_kwargs(Definition("main", [], Return(c)), book)


def test_call_variable_with_kwargs(book):
    c = Call(Var("g"), [], [("a", Var("p"))])
    with pytest.raises(KwargsError) as info:
        order_kwargs(Definition("main", [], Return(c)), book)
    assert str(info.value) == (
        "In function 'main':\n  Named args are only allowed when calling a named function, "
        "not when calling variable 'g'."
    )


def test_call_expression_with_kwargs(book):
    c = Call(Lam([("x", False)], Var("x")), [], [("a", Var("p"))])
    with pytest.raises(KwargsError, match="not when calling an expression"):
        order_kwargs(Definition("main", [], Return(c)), book)


def test_positional_only_untouched(book):
    c = Call(Var("g"), [Var("p")], [])
    order_kwargs(Definition("main", [], Return(c)), book)
    assert c.args == [Var("p")]
    assert c.kwargs == []