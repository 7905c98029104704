"""Interaction net used while reading back results from the runtime."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional, Tuple


class Port(NamedTuple):
    node: int
    slot: int


ROOT = Port(0, 1)
TAG_WIDTH = 4
TAG = 64 - TAG_WIDTH
LABEL_MASK = (1 << TAG) - 1
TAG_MASK = ~LABEL_MASK & ((1 << 64) - 1)


@dataclass(frozen=True)
class CtrKind:
    """Kind of a binary combinator: 'con', 'tup' or 'dup', with an optional label."""

    kind: str
    lab: Optional[int] = None

    CON = "con"
    TUP = "tup"
    DUP = "dup"

    def __post_init__(self) -> None:
        if self.kind not in (self.CON, self.TUP, self.DUP):
            raise ValueError(f"unknown combinator kind {self.kind!r}")
        if self.kind == self.DUP and self.lab is None:
            raise ValueError("a dup combinator needs a label")

    def to_lab(self) -> int:
        if self.kind in (self.CON, self.TUP):
            if self.lab is None:
                return 0
            raise NotImplementedError(f"tagged {self.kind} nodes are not supported")
        if self.lab == 0:
            return 1
        raise NotImplementedError("tagged dups/sups are not supported")

    @classmethod
    def from_lab(cls, lab: int) -> "CtrKind":
        if lab == 0:
            return cls(cls.CON)
        return cls(cls.DUP, lab - 1)


class NodeTag(Enum):
    ROT = "rot"
    ERA = "era"
    CTR = "ctr"
    REF = "ref"
    NUM = "num"
    OPR = "opr"
    MAT = "mat"


@dataclass(frozen=True)
class NodeKind:
    """What a node is; `ctr`, `def_name` and `val` are set for CTR, REF and NUM nodes."""

    tag: NodeTag
    ctr: Optional[CtrKind] = None
    def_name: Optional[str] = None
    val: Optional[int] = None


ROT = NodeKind(NodeTag.ROT)
ERA = NodeKind(NodeTag.ERA)
OPR = NodeKind(NodeTag.OPR)
MAT = NodeKind(NodeTag.MAT)


@dataclass
class Node:
    main: Port
    aux1: Port
    aux2: Port
    kind: NodeKind

    _SLOTS = ("main", "aux1", "aux2")

    def _slot_name(self, slot: int) -> str:
        if not 0 <= slot < 3:
            raise ValueError(f"invalid slot {slot}")
        return self._SLOTS[slot]

    def port(self, slot: int) -> Port:
        return getattr(self, self._slot_name(slot))

    def set_port(self, slot: int, port: Port) -> None:
        setattr(self, self._slot_name(slot), port)


@dataclass
class INode:
    """A node whose ports are named wires; equal names are linked."""

    kind: NodeKind
    ports: Tuple[str, str, str]


def _root_node() -> Node:
    return Node(Port(0, 2), Port(0, 1), Port(0, 0), ROT)


@dataclass
class INet:
    """A net of three-port nodes; node 0 is a deadlocked root."""

    nodes: list = field(default_factory=lambda: [_root_node()])

    def new_node(self, kind: NodeKind) -> int:
        """Allocate a node whose ports point to themselves and return its id."""
        idx = len(self.nodes)
        self.nodes.append(Node(Port(idx, 0), Port(idx, 1), Port(idx, 2), kind))
        return idx

    def node(self, node: int) -> Node:
        return self.nodes[node]

    def enter_port(self, port: Port) -> Port:
        """The port on the other side of the wire attached to `port`."""
        return self.node(port.node).port(port.slot)

    def link(self, a: Port, b: Port) -> None:
        self.set(a, b)
        self.set(b, a)

    def set(self, src: Port, dst: Port) -> None:
        self.nodes[src.node].set_port(src.slot, dst)