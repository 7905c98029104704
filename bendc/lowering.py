"""Lowering of imperative definitions into functional terms."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

from bendc.syntax import (
    Ask,
    Assign,
    Bend,
    Bin,
    Call,
    Chn,
    ChnPat,
    Comprehension,
    Constructor,
    Definition,
    Do,
    Eraser,
    EraserPat,
    Expr,
    Fold,
    If,
    InPlace,
    Lam,
    Lst,
    MapGet,
    MapInit,
    MapSetPat,
    Match,
    Num,
    Number,
    Op,
    Open,
    Return,
    Stmt,
    Str,
    Sup,
    SupPat,
    Switch,
    Tup,
    TupPat,
    Use,
    Var,
    VarPat,
)

LCONS = "List/Cons"
LNIL = "List/Nil"


class LoweringError(Exception):
    """Raised when a definition cannot be turned into a functional term."""


class Tag(Enum):
    STATIC = "static"
    AUTO = "auto"


class FanKind(Enum):
    TUP = "tup"
    DUP = "dup"


# Patterns


@dataclass
class PatVar:
    nam: Optional[str]


@dataclass
class PatChn:
    nam: str


@dataclass
class PatFan:
    fan: FanKind
    tag: Tag
    els: list = field(default_factory=list)


Pattern = Union[PatVar, PatChn, PatFan]


# Terms


@dataclass
class TEra:
    pass


@dataclass
class TVar:
    nam: str


@dataclass
class TLink:
    nam: str


@dataclass
class TNum:
    val: Num


@dataclass
class TRef:
    nam: str


@dataclass
class TApp:
    fun: "Term"
    arg: "Term"
    tag: Tag = Tag.STATIC


@dataclass
class TLam:
    pat: Pattern
    bod: "Term"
    tag: Tag = Tag.STATIC


@dataclass
class TOper:
    opr: Op
    fst: "Term"
    snd: "Term"


@dataclass
class TStr:
    val: str


@dataclass
class TList:
    els: list = field(default_factory=list)


@dataclass
class TFan:
    fan: FanKind
    tag: Tag
    els: list = field(default_factory=list)


@dataclass
class TLet:
    pat: Pattern
    val: "Term"
    nxt: "Term"


@dataclass
class TSwt:
    arg: "Term"
    bnd: Optional[str]
    with_: list
    pred: Optional[str]
    arms: list


@dataclass
class TMat:
    arg: "Term"
    bnd: Optional[str]
    with_: list
    arms: list


@dataclass
class TFold:
    arg: "Term"
    bnd: Optional[str]
    with_: list
    arms: list


@dataclass
class TBend:
    bind: list
    init: list
    cond: "Term"
    step: "Term"
    base: "Term"


@dataclass
class TDo:
    typ: str
    bod: "Term"


@dataclass
class TAsk:
    pat: Pattern
    val: "Term"
    nxt: "Term"


@dataclass
class TOpen:
    typ: str
    var: str
    bod: "Term"


@dataclass
class TUse:
    nam: Optional[str]
    val: "Term"
    nxt: "Term"


Term = Union[
    TEra, TVar, TLink, TNum, TRef, TApp, TLam, TOper, TStr, TList, TFan,
    TLet, TSwt, TMat, TFold, TBend, TDo, TAsk, TOpen, TUse,
]


# Book


@dataclass
class Rule:
    pats: list
    body: Term


@dataclass
class FunDefinition:
    name: str
    rules: list
    builtin: bool = False


@dataclass
class Adt:
    """A data type: constructor names mapped to their field lists."""

    ctrs: dict = field(default_factory=dict)
    builtin: bool = False


@dataclass
class Book:
    """Definitions, data types and the constructor-to-type index."""

    defs: dict = field(default_factory=dict)
    adts: dict = field(default_factory=dict)
    ctrs: dict = field(default_factory=dict)


def call(fun: Term, args: Iterable[Term]) -> Term:
    """Apply `fun` to each of `args` in turn."""
    term = fun
    for arg in args:
        term = TApp(term, arg)
    return term


def pattern_to_fun(pat) -> Pattern:
    if isinstance(pat, EraserPat):
        return PatVar(None)
    if isinstance(pat, VarPat):
        return PatVar(pat.nam)
    if isinstance(pat, ChnPat):
        return PatChn(pat.nam)
    if isinstance(pat, TupPat):
        return PatFan(FanKind.TUP, Tag.STATIC, [pattern_to_fun(p) for p in pat.pats])
    if isinstance(pat, SupPat):
        return PatFan(FanKind.DUP, Tag.AUTO, [pattern_to_fun(p) for p in pat.pats])
    if isinstance(pat, MapSetPat):
        raise LoweringError("Map assignment cannot be used as a pattern.")
    raise TypeError(f"not an assignment pattern: {pat!r}")


def expr_to_fun(expr: Expr) -> Term:
    if isinstance(expr, Eraser):
        return TEra()
    if isinstance(expr, Var):
        return TVar(expr.nam)
    if isinstance(expr, Chn):
        return TLink(expr.nam)
    if isinstance(expr, Number):
        return TNum(expr.val)
    if isinstance(expr, Call):
        if expr.kwargs:
            raise LoweringError("Named arguments must be ordered before lowering.")
        return call(expr_to_fun(expr.fun), [expr_to_fun(a) for a in expr.args])
    if isinstance(expr, Lam):
        term = expr_to_fun(expr.bod)
        for name, link in reversed(expr.names):
            pat = PatChn(name) if link else PatVar(name)
            term = TLam(pat, term, Tag.STATIC)
        return term
    if isinstance(expr, Bin):
        return TOper(expr.op, expr_to_fun(expr.lhs), expr_to_fun(expr.rhs))
    if isinstance(expr, Str):
        return TStr(expr.val)
    if isinstance(expr, Lst):
        return TList([expr_to_fun(e) for e in expr.els])
    if isinstance(expr, Tup):
        return TFan(FanKind.TUP, Tag.STATIC, [expr_to_fun(e) for e in expr.els])
    if isinstance(expr, Sup):
        return TFan(FanKind.DUP, Tag.AUTO, [expr_to_fun(e) for e in expr.els])
    if isinstance(expr, Constructor):
        if expr.kwargs:
            raise LoweringError("Named arguments must be ordered before lowering.")
        return call(TRef(expr.name), [expr_to_fun(a) for a in expr.args])
    if isinstance(expr, Comprehension):
        return _comprehension(expr)
    if isinstance(expr, MapInit):
        term: Term = TRef("Map/empty")
        for key, value in expr.entries:
            term = call(TRef("Map/set"), [term, expr_to_fun(key), expr_to_fun(value)])
        return term
    if isinstance(expr, MapGet):
        raise LoweringError("Map lookups must be expanded before lowering.")
    raise TypeError(f"not an expression: {expr!r}")


def _comprehension(expr: Comprehension) -> Term:
    iter_tail = "%iter.tail"
    iter_head = "%iter.head"
    cons_branch: Term = call(TRef(LCONS), [expr_to_fun(expr.term), TVar(iter_tail)])
    if expr.cond is not None:
        cons_branch = TSwt(
            expr_to_fun(expr.cond),
            "%comprehension",
            [],
            "%comprehension-1",
            [TVar(iter_tail), cons_branch],
        )
    cons_branch = TLet(PatVar(expr.bind), TVar(iter_head), cons_branch)
    return TFold(
        expr_to_fun(expr.iter),
        "%iter",
        [],
        [(LNIL, [], TRef(LNIL)), (LCONS, [], cons_branch)],
    )


def definition_to_fun(definition: Definition, builtin: bool) -> FunDefinition:
    """Lower an imperative definition to a single-rule functional definition."""
    try:
        pat, body = _lower(definition.body)
    except LoweringError as e:
        raise LoweringError(f"In function '{definition.name}': {e}") from None
    if pat is not None:
        raise LoweringError(f"Function '{definition.name}' doesn't end with a return statement")
    rule = Rule([PatVar(param) for param in definition.params], body)
    return FunDefinition(definition.name, [rule], builtin)


_Lowered = Tuple[Optional[Pattern], Term]


def _lower(stmt: Stmt) -> _Lowered:
    """Lower a statement; the pattern is set when it ends in an assignment."""
    if isinstance(stmt, Assign):
        if isinstance(stmt.pat, MapSetPat):
            if stmt.nxt is None:
                raise LoweringError("Branch ends with map assignment.")
            nxt_pat, nxt = _lower(stmt.nxt)
            name = stmt.pat.nam
            val = call(TRef("Map/set"), [TVar(name), expr_to_fun(stmt.pat.key), expr_to_fun(stmt.val)])
            return nxt_pat, TLet(PatVar(name), val, nxt)
        pat = pattern_to_fun(stmt.pat)
        val = expr_to_fun(stmt.val)
        if stmt.nxt is None:
            return pat, val
        nxt_pat, nxt = _lower(stmt.nxt)
        return nxt_pat, TLet(pat, val, nxt)
    if isinstance(stmt, InPlace):
        nxt_pat, nxt = _lower(stmt.nxt)
        val = TOper(stmt.op.to_lang_op(), TVar(stmt.var), expr_to_fun(stmt.val))
        return nxt_pat, TLet(PatVar(stmt.var), val, nxt)
    if isinstance(stmt, If):
        pat, then, else_ = _two_branches("if", _lower(stmt.then), _lower(stmt.otherwise))
        term = TSwt(expr_to_fun(stmt.cond), "%pred", [], "%pred-1", [else_, then])
        return _wrap_nxt(term, stmt.nxt, pat)
    if isinstance(stmt, (Match, Fold)):
        kind = "match" if isinstance(stmt, Match) else "fold"
        arg = expr_to_fun(stmt.arg)
        pat, bodies = _arms(kind, [arm.rgt for arm in stmt.arms])
        fun_arms = [(arm.lft, [], body) for arm, body in zip(stmt.arms, bodies)]
        if isinstance(stmt, Match):
            term: Term = TMat(arg, stmt.bind, [], fun_arms)
        else:
            term = TFold(arg, stmt.bind, list(stmt.with_), fun_arms)
        return _wrap_nxt(term, stmt.nxt, pat)
    if isinstance(stmt, Switch):
        arg = expr_to_fun(stmt.arg)
        pat, bodies = _arms("switch", stmt.arms)
        if stmt.bind is None:
            raise LoweringError("'switch' has no bound name.")
        pred = f"{stmt.bind}-{len(bodies) - 1}"
        term = TSwt(arg, stmt.bind, [], pred, bodies)
        return _wrap_nxt(term, stmt.nxt, pat)
    if isinstance(stmt, Bend):
        init = [expr_to_fun(e) for e in stmt.init]
        cond = expr_to_fun(stmt.cond)
        pat, step, base = _two_branches("bend", _lower(stmt.step), _lower(stmt.base))
        term = TBend(list(stmt.bind), init, cond, step, base)
        return _wrap_nxt(term, stmt.nxt, pat)
    if isinstance(stmt, Do):
        pat, bod = _lower(stmt.bod)
        return _wrap_nxt(TDo(stmt.typ, bod), stmt.nxt, pat)
    if isinstance(stmt, Ask):
        nxt_pat, nxt = _lower(stmt.nxt)
        return nxt_pat, TAsk(pattern_to_fun(stmt.pat), expr_to_fun(stmt.val), nxt)
    if isinstance(stmt, Open):
        nxt_pat, nxt = _lower(stmt.nxt)
        return nxt_pat, TOpen(stmt.typ, stmt.var, nxt)
    if isinstance(stmt, Use):
        nxt_pat, nxt = _lower(stmt.nxt)
        return nxt_pat, TUse(stmt.nam, expr_to_fun(stmt.val), nxt)
    if isinstance(stmt, Return):
        return None, expr_to_fun(stmt.term)
    raise TypeError(f"not a statement: {stmt!r}")


def _two_branches(kind: str, fst: _Lowered, snd: _Lowered) -> Tuple[Optional[Pattern], Term, Term]:
    (fst_pat, fst_term), (snd_pat, snd_term) = fst, snd
    if fst_pat is None and snd_pat is None:
        return None, fst_term, snd_term
    if fst_pat is not None and snd_pat is not None:
        if fst_pat == snd_pat:
            return fst_pat, fst_term, snd_term
        raise LoweringError(f"'{kind}' branches end with different assignments.")
    if fst_pat is None:
        raise LoweringError(
            f"Expected 'else' branch from '{kind}' to return, but it ends with assignment."
        )
    raise LoweringError(
        f"Expected 'else' branch from '{kind}' to end with assignment, but it returns."
    )


def _arms(kind: str, stmts: list) -> Tuple[Optional[Pattern], List[Term]]:
    if not stmts:
        raise LoweringError(f"'{kind}' has no arms.")
    fst_pat, fst_term = _lower(stmts[0])
    bodies = [fst_term]
    for stmt in stmts[1:]:
        arm_pat, arm_term = _lower(stmt)
        if arm_pat is not None and fst_pat is not None and arm_pat != fst_pat:
            raise LoweringError(f"'{kind}' arms end with different assignments.")
        if arm_pat is not None and fst_pat is None:
            raise LoweringError(f"Expected '{kind}' arms to end with assignment, but it returns.")
        if arm_pat is None and fst_pat is not None:
            raise LoweringError(f"Expected '{kind}' arms to return, but it ends with assignment.")
        bodies.append(arm_term)
    return fst_pat, bodies


def _wrap_nxt(term: Term, nxt: Optional[Stmt], pat: Optional[Pattern]) -> _Lowered:
    """Bind `term` to `pat` and continue with `nxt`, or pass it through if nothing follows."""
    if nxt is None:
        return pat, term
    if pat is None:
        raise LoweringError("Statement ends with return but is not at end of function.")
    nxt_pat, nxt_term = _lower(nxt)
    return nxt_pat, TLet(pat, term, nxt_term)