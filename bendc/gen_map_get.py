"""Turns map lookups inside expressions into explicit `Map/get` assignments."""

from __future__ import annotations

from itertools import count
from typing import Dict, Iterator, Tuple

from bendc.syntax import (
    Ask,
    Assign,
    Bend,
    Bin,
    Call,
    Comprehension,
    Constructor,
    Definition,
    Do,
    Expr,
    Fold,
    If,
    InPlace,
    Lam,
    Lst,
    MapGet,
    MapInit,
    Match,
    Open,
    Return,
    Stmt,
    Sup,
    Switch,
    Tup,
    TupPat,
    Use,
    Var,
    VarPat,
)

Substitutions = Dict[str, Tuple[str, Expr]]


def gen_map_get(definition: Definition) -> None:
    """Replace every map lookup in the definition's body with a fresh variable
    bound by a preceding `Map/get` call."""
    definition.body = _gen_stmt(definition.body, count())


def _wrap(stmt: Stmt, subs: Substitutions) -> Stmt:
    acc = stmt
    for var, (map_var, key) in subs.items():
        get_call = Call(Var("Map/get"), [Var(map_var), key], [])
        pat = TupPat([VarPat(var), VarPat(map_var)])
        acc = Assign(pat, get_call, acc)
    return acc


def _gen_stmt(stmt: Stmt, counter: Iterator[int]) -> Stmt:
    subs: Substitutions = {}
    if isinstance(stmt, Assign):
        if stmt.nxt is not None:
            stmt.nxt = _gen_stmt(stmt.nxt, counter)
        stmt.val, subs = substitute_map_gets(stmt.val, counter)
    elif isinstance(stmt, (Ask, InPlace)):
        stmt.nxt = _gen_stmt(stmt.nxt, counter)
        stmt.val, subs = substitute_map_gets(stmt.val, counter)
    elif isinstance(stmt, If):
        stmt.then = _gen_stmt(stmt.then, counter)
        stmt.otherwise = _gen_stmt(stmt.otherwise, counter)
        if stmt.nxt is not None:
            stmt.nxt = _gen_stmt(stmt.nxt, counter)
        stmt.cond, subs = substitute_map_gets(stmt.cond, counter)
    elif isinstance(stmt, (Match, Fold)):
        for arm in stmt.arms:
            arm.rgt = _gen_stmt(arm.rgt, counter)
        if stmt.nxt is not None:
            stmt.nxt = _gen_stmt(stmt.nxt, counter)
        stmt.arg, subs = substitute_map_gets(stmt.arg, counter)
    elif isinstance(stmt, Switch):
        stmt.arms = [_gen_stmt(arm, counter) for arm in stmt.arms]
        if stmt.nxt is not None:
            stmt.nxt = _gen_stmt(stmt.nxt, counter)
        stmt.arg, subs = substitute_map_gets(stmt.arg, counter)
    elif isinstance(stmt, Bend):
        stmt.step = _gen_stmt(stmt.step, counter)
        stmt.base = _gen_stmt(stmt.base, counter)
        if stmt.nxt is not None:
            stmt.nxt = _gen_stmt(stmt.nxt, counter)
        stmt.cond, subs = substitute_map_gets(stmt.cond, counter)
        new_init = []
        for init in stmt.init:
            init, more = substitute_map_gets(init, counter)
            subs.update(more)
            new_init.append(init)
        stmt.init = new_init
    elif isinstance(stmt, Do):
        stmt.bod = _gen_stmt(stmt.bod, counter)
        if stmt.nxt is not None:
            stmt.nxt = _gen_stmt(stmt.nxt, counter)
    elif isinstance(stmt, Return):
        stmt.term, subs = substitute_map_gets(stmt.term, counter)
    elif isinstance(stmt, Open):
        stmt.nxt = _gen_stmt(stmt.nxt, counter)
    elif isinstance(stmt, Use):
        stmt.nxt = _gen_stmt(stmt.nxt, counter)
        stmt.val, subs = substitute_map_gets(stmt.val, counter)
    return _wrap(stmt, subs) if subs else stmt


def substitute_map_gets(expr: Expr, counter: Iterator[int]) -> Tuple[Expr, Substitutions]:
    """Replace map lookups in `expr` with fresh variables.

    Returns the rewritten expression and a mapping from each fresh variable
    to the map name and key it stands for.
    """
    subs: Substitutions = {}
    return _go(expr, subs, counter), subs


def _go(e: Expr, subs: Substitutions, counter: Iterator[int]) -> Expr:
    if isinstance(e, MapGet):
        new_var = f"map/get%{next(counter)}"
        subs[new_var] = (e.nam, e.key)
        return Var(new_var)
    if isinstance(e, Call):
        e.fun = _go(e.fun, subs, counter)
        e.args = [_go(arg, subs, counter) for arg in e.args]
        e.kwargs = [(name, _go(arg, subs, counter)) for name, arg in e.kwargs]
    elif isinstance(e, Lam):
        e.bod = _go(e.bod, subs, counter)
    elif isinstance(e, Bin):
        e.lhs = _go(e.lhs, subs, counter)
        e.rhs = _go(e.rhs, subs, counter)
    elif isinstance(e, (Lst, Tup, Sup)):
        e.els = [_go(el, subs, counter) for el in e.els]
    elif isinstance(e, Constructor):
        e.kwargs = [(name, _go(arg, subs, counter)) for name, arg in e.kwargs]
    elif isinstance(e, Comprehension):
        e.term = _go(e.term, subs, counter)
        e.iter = _go(e.iter, subs, counter)
        if e.cond is not None:
            e.cond = _go(e.cond, subs, counter)
    elif isinstance(e, MapInit):
        e.entries = [(key, _go(val, subs, counter)) for key, val in e.entries]
    return e