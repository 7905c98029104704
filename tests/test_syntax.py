import pytest

from bendc.syntax import (
    Assign,
    CtrField,
    InPlaceOp,
    Num,
    Op,
    Return,
    TupPat,
    Var,
    VarPat,
)


def test_max_precedence():
    assert Op.max_precedence() == 8


def test_pow_has_max_precedence():
    assert Op.POW.precedence() == Op.max_precedence()


def test_or_is_loosest():
    assert Op.OR.precedence() == 0
    assert all(op.precedence() >= Op.OR.precedence() for op in Op if op not in (Op.ATN, Op.LOG))


def test_precedence_groups():
    assert Op.ADD.precedence() == Op.SUB.precedence()
    assert Op.MUL.precedence() == Op.DIV.precedence() == Op.REM.precedence()
    assert Op.MUL.precedence() > Op.ADD.precedence()
    assert Op.LT.precedence() > Op.EQ.precedence()
    assert Op.SHL.precedence() == Op.SHR.precedence()


@pytest.mark.parametrize("op", [Op.ATN, Op.LOG])
def test_precedence_missing(op):
    with pytest.raises(ValueError):
        op.precedence()


@pytest.mark.parametrize(
    "inplace, op",
    [
        (InPlaceOp.ADD, Op.ADD),
        (InPlaceOp.SUB, Op.SUB),
        (InPlaceOp.MUL, Op.MUL),
        (InPlaceOp.DIV, Op.DIV),
        (InPlaceOp.AND, Op.AND),
        (InPlaceOp.OR, Op.OR),
        (InPlaceOp.XOR, Op.XOR),
    ],
)
def test_in_place_to_lang_op(inplace, op):
    assert inplace.to_lang_op() is op


def test_num_rejects_unknown_kind():
    with pytest.raises(ValueError):
        Num(1, "u64")


def test_num_default_kind():
    assert Num(3).kind == "u24"


def test_assign_default_next_and_equality():
    a = Assign(TupPat([VarPat("x"), VarPat("y")]), Var("v"))
    b = Assign(TupPat([VarPat("x"), VarPat("y")]), Var("v"))
    assert a.nxt is None
    assert a == b
    assert a != Assign(TupPat([VarPat("y"), VarPat("x")]), Var("v"))


def test_ctr_field_default_not_recursive():
    assert CtrField("head").rec is False
    assert CtrField("tail", True) == CtrField("tail", rec=True)


def test_return_holds_term():
    assert Return(Var("x")).term == Var("x")