"""Abstract syntax of the imperative (Python-like) surface language."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

_PRECEDENCE = {
    "OR": 0,
    "XOR": 1,
    "AND": 2,
    "EQ": 3,
    "NEQ": 3,
    "LT": 4,
    "GT": 4,
    "SHL": 5,
    "SHR": 5,
    "ADD": 6,
    "SUB": 6,
    "MUL": 7,
    "DIV": 7,
    "REM": 7,
    "POW": 8,
}


class Op(Enum):
    """Binary numeric operators."""

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    REM = "%"
    EQ = "=="
    NEQ = "!="
    LT = "<"
    GT = ">"
    AND = "&"
    OR = "|"
    XOR = "^"
    SHL = "<<"
    SHR = ">>"
    POW = "**"
    ATN = "atan"
    LOG = "log"

    def precedence(self) -> int:
        """Binding strength of the operator in infix position (higher binds tighter)."""
        try:
            return _PRECEDENCE[self.name]
        except KeyError:
            raise ValueError(f"operator {self.name} has no infix precedence") from None

    @classmethod
    def max_precedence(cls) -> int:
        return 8


_NUM_KINDS = ("u24", "i24", "f24")


@dataclass(frozen=True)
class Num:
    """A numeric literal with its machine kind: 'u24', 'i24' or 'f24'."""

    value: Union[int, float]
    kind: str = "u24"

    def __post_init__(self) -> None:
        if self.kind not in _NUM_KINDS:
            raise ValueError(f"unknown number kind {self.kind!r}")


@dataclass(frozen=True)
class CtrField:
    """A constructor field; `rec` marks a recursive field."""

    nam: str
    rec: bool = False


# Expressions


@dataclass
class Eraser:
    pass


@dataclass
class Var:
    nam: str


@dataclass
class Chn:
    nam: str


@dataclass
class Number:
    val: Num


@dataclass
class Call:
    fun: "Expr"
    args: list = field(default_factory=list)
    kwargs: list = field(default_factory=list)


@dataclass
class Lam:
    names: list
    bod: "Expr"


@dataclass
class Bin:
    op: Op
    lhs: "Expr"
    rhs: "Expr"


@dataclass
class Str:
    val: str


@dataclass
class Lst:
    els: list = field(default_factory=list)


@dataclass
class Tup:
    els: list = field(default_factory=list)


@dataclass
class Sup:
    els: list = field(default_factory=list)


@dataclass
class Constructor:
    name: str
    args: list = field(default_factory=list)
    kwargs: list = field(default_factory=list)


@dataclass
class Comprehension:
    term: "Expr"
    bind: str
    iter: "Expr"
    cond: Optional["Expr"] = None


@dataclass
class MapInit:
    entries: list = field(default_factory=list)


@dataclass
class MapGet:
    nam: str
    key: "Expr"


Expr = Union[
    Eraser, Var, Chn, Number, Call, Lam, Bin, Str, Lst, Tup, Sup,
    Constructor, Comprehension, MapInit, MapGet,
]


# Assignment patterns


@dataclass
class EraserPat:
    pass


@dataclass
class VarPat:
    nam: str


@dataclass
class ChnPat:
    nam: str


@dataclass
class TupPat:
    pats: list


@dataclass
class SupPat:
    pats: list


@dataclass
class MapSetPat:
    nam: str
    key: "Expr"


AssignPattern = Union[EraserPat, VarPat, ChnPat, TupPat, SupPat, MapSetPat]


class InPlaceOp(Enum):
    """Operators of in-place assignments such as `x += 1`."""

    ADD = "+="
    SUB = "-="
    MUL = "*="
    DIV = "/="
    AND = "&="
    OR = "|="
    XOR = "^="

    def to_lang_op(self) -> Op:
        return Op[self.name]


# Statements


@dataclass
class MatchArm:
    lft: Optional[str]
    rgt: "Stmt"


@dataclass
class Assign:
    pat: AssignPattern
    val: Expr
    nxt: Optional["Stmt"] = None


@dataclass
class InPlace:
    op: InPlaceOp
    var: str
    val: Expr
    nxt: "Stmt"


@dataclass
class If:
    cond: Expr
    then: "Stmt"
    otherwise: "Stmt"
    nxt: Optional["Stmt"] = None


@dataclass
class Match:
    arg: Expr
    bind: Optional[str]
    arms: list
    nxt: Optional["Stmt"] = None


@dataclass
class Switch:
    arg: Expr
    bind: Optional[str]
    arms: list
    nxt: Optional["Stmt"] = None


@dataclass
class Bend:
    bind: list
    init: list
    cond: Expr
    step: "Stmt"
    base: "Stmt"
    nxt: Optional["Stmt"] = None


@dataclass
class Fold:
    arg: Expr
    bind: Optional[str]
    with_: list
    arms: list
    nxt: Optional["Stmt"] = None


@dataclass
class Do:
    typ: str
    bod: "Stmt"
    nxt: Optional["Stmt"] = None


@dataclass
class Ask:
    pat: AssignPattern
    val: Expr
    nxt: "Stmt"


@dataclass
class Return:
    term: Expr


@dataclass
class Open:
    typ: str
    var: str
    nxt: "Stmt"


@dataclass
class Use:
    nam: str
    val: Expr
    nxt: "Stmt"


Stmt = Union[Assign, InPlace, If, Match, Switch, Bend, Fold, Do, Ask, Return, Open, Use]


# Top-level items


@dataclass
class Variant:
    name: str
    fields: list = field(default_factory=list)


@dataclass
class Definition:
    name: str
    params: list
    body: Stmt


@dataclass
class TypeDef:
    name: str
    variants: list = field(default_factory=list)