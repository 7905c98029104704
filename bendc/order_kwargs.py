"""Reordering of named call arguments into positional order."""

from __future__ import annotations

from typing import List, Optional

from bendc.lowering import Book, PatFan, PatVar
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
    MapInit,
    Match,
    Open,
    Return,
    Stmt,
    Sup,
    Switch,
    Tup,
    Use,
    Var,
)


class KwargsError(Exception):
    """Raised when named arguments cannot be matched to a definition."""


def order_kwargs(definition: Definition, book: Book) -> None:
    """Rewrite calls with named arguments so all arguments are positional,
    in the order the called function or constructor declares them."""
    try:
        _stmt(definition.body, book)
    except KwargsError as e:
        raise KwargsError(f"In function '{definition.name}':\n  {e}") from None


def arg_names(name: str, book: Book) -> Optional[List[str]]:
    """Parameter names of a constructor or definition, or None if unknown."""
    adt_name = book.ctrs.get(name)
    if adt_name is not None:
        return [f.nam for f in book.adts[adt_name].ctrs[name]]
    definition = book.defs.get(name)
    if definition is not None:
        return [b for p in definition.rules[0].pats for b in _binds(p) if b is not None]
    return None


def _binds(pat):
    if isinstance(pat, PatVar):
        yield pat.nam
    elif isinstance(pat, PatFan):
        for el in pat.els:
            yield from _binds(el)


def _stmt(stmt: Optional[Stmt], book: Book) -> None:
    if stmt is None:
        return
    if isinstance(stmt, (Assign, Ask, InPlace)):
        _expr(stmt.val, book)
        _stmt(stmt.nxt, book)
    elif isinstance(stmt, If):
        _expr(stmt.cond, book)
        _stmt(stmt.then, book)
        _stmt(stmt.otherwise, book)
        _stmt(stmt.nxt, book)
    elif isinstance(stmt, (Match, Fold)):
        _expr(stmt.arg, book)
        for arm in stmt.arms:
            _stmt(arm.rgt, book)
        _stmt(stmt.nxt, book)
    elif isinstance(stmt, Switch):
        _expr(stmt.arg, book)
        for arm in stmt.arms:
            _stmt(arm, book)
        _stmt(stmt.nxt, book)
    elif isinstance(stmt, Bend):
        for init in stmt.init:
            _expr(init, book)
        _expr(stmt.cond, book)
        _stmt(stmt.step, book)
        _stmt(stmt.base, book)
        _stmt(stmt.nxt, book)
    elif isinstance(stmt, Do):
        _stmt(stmt.bod, book)
        _stmt(stmt.nxt, book)
    elif isinstance(stmt, Open):
        _stmt(stmt.nxt, book)
    elif isinstance(stmt, Use):
        _expr(stmt.val, book)
        _stmt(stmt.nxt, book)
    elif isinstance(stmt, Return):
        _expr(stmt.term, book)


def _expr(expr: Expr, book: Book) -> None:
    if isinstance(expr, Call):
        if expr.kwargs:
            if not isinstance(expr.fun, Var):
                raise KwargsError(
                    "Named args are only allowed when calling a named function, "
                    "not when calling an expression."
                )
            names = arg_names(expr.fun.nam, book)
            if names is None:
                raise KwargsError(
                    "Named args are only allowed when calling a named function, "
                    f"not when calling variable '{expr.fun.nam}'."
                )
            _reorder(names, expr)
        _expr(expr.fun, book)
        for arg in expr.args:
            _expr(arg, book)
        for _, arg in expr.kwargs:
            _expr(arg, book)
    elif isinstance(expr, Lam):
        _expr(expr.bod, book)
    elif isinstance(expr, Bin):
        _expr(expr.lhs, book)
        _expr(expr.rhs, book)
    elif isinstance(expr, (Lst, Tup, Sup)):
        for el in expr.els:
            _expr(el, book)
    elif isinstance(expr, Comprehension):
        _expr(expr.term, book)
        _expr(expr.iter, book)
        if expr.cond is not None:
            _expr(expr.cond, book)
    elif isinstance(expr, Constructor):
        names = arg_names(expr.name, book)
        if names is None:
            raise KwargsError(f"Constructor '{expr.name}' not found.")
        _reorder(names, expr)
        for arg in expr.args:
            _expr(arg, book)
    elif isinstance(expr, MapInit):
        for _, val in expr.entries:
            _expr(val, book)


def _reorder(names: List[str], expr) -> None:
    """Move `expr.kwargs` into `expr.args` following `names`."""
    if len(expr.args) + len(expr.kwargs) != len(names):
        raise KwargsError(
            "Named args are only allowed when calling a function with the exact number of arguments."
        )
    kwargs = dict(expr.kwargs)
    for name in names[len(expr.args):]:
        if name not in kwargs:
            raise KwargsError(f"Named arg '{name}' is missing.")
        expr.args.append(kwargs.pop(name))
    if kwargs:
        raise KwargsError(f"Unexpected named arg in function call {next(iter(kwargs))}.")
    expr.kwargs = []