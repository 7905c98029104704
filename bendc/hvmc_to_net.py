"""Conversion of a runtime net in tree notation into an `INet`."""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import count
from typing import Iterator, List, Tuple, Union

from bendc.inet import ERA, MAT, OPR, ROOT, CtrKind, INet, INode, NodeKind, NodeTag, Port


@dataclass
class TreeEra:
    pass


@dataclass
class TreeCtr:
    lab: int
    ports: list = field(default_factory=list)


@dataclass
class TreeVar:
    nam: str


@dataclass
class TreeRef:
    nam: str


@dataclass
class TreeNum:
    val: int


@dataclass
class TreeOp:
    fst: "Tree"
    snd: "Tree"


@dataclass
class TreeMat:
    zero: "Tree"
    succ: "Tree"
    out: "Tree"


Tree = Union[TreeEra, TreeCtr, TreeVar, TreeRef, TreeNum, TreeOp, TreeMat]


@dataclass
class HvmNet:
    """A net: a root tree and redexes given as (safe, left, right) triples."""

    root: Tree
    redexes: list = field(default_factory=list)


def hvmc_to_net(net: HvmNet) -> INet:
    return inodes_to_inet(hvmc_to_inodes(net))


def hvmc_to_inodes(net: HvmNet) -> List[INode]:
    """Flatten the net into nodes whose ports are named wires."""
    inodes: List[INode] = []
    counter = count()
    net_root = net.root.nam if isinstance(net.root, TreeVar) else ""

    if not isinstance(net.root, TreeVar):
        inodes.extend(_tree_to_inodes(net.root, "_", net_root, counter))

    for i, (_, tree1, tree2) in enumerate(net.redexes):
        tree_root = f"a{i}"
        inodes.extend(_tree_to_inodes(tree1, tree_root, net_root, counter))
        inodes.extend(_tree_to_inodes(tree2, tree_root, net_root, counter))
    return inodes


def _new_var(counter: Iterator[int]) -> str:
    return f"x{next(counter)}"


_Pending = List[Tuple[str, Tree]]


def _node_subtree(subtree: Tree, net_root: str, pending: _Pending, counter: Iterator[int]) -> str:
    if isinstance(subtree, TreeVar):
        return "_" if subtree.nam == net_root else subtree.nam
    if isinstance(subtree, TreeCtr) and len(subtree.ports) == 1:
        return _node_subtree(subtree.ports[0], net_root, pending, counter)
    var = _new_var(counter)
    pending.append((var, subtree))
    return var


def _process_ctr(
    inodes: List[INode],
    lab: int,
    ports: list,
    net_root: str,
    principal: str,
    pending: _Pending,
    counter: Iterator[int],
) -> None:
    if not ports:
        inner = _new_var(counter)
        inodes.append(INode(ERA, (principal, inner, inner)))
    elif len(ports) == 1:
        pending.append((principal, ports[0]))
    else:
        kind = NodeKind(NodeTag.CTR, ctr=CtrKind.from_lab(lab))
        rest = ports[1:]
        if len(rest) == 1:
            rgt = _node_subtree(rest[0], net_root, pending, counter)
        else:
            rgt = _new_var(counter)
            _process_ctr(inodes, lab, rest, net_root, rgt, pending, counter)
        lft = _node_subtree(ports[0], net_root, pending, counter)
        inodes.append(INode(kind, (principal, lft, rgt)))


def _tree_to_inodes(tree: Tree, tree_root: str, net_root: str, counter: Iterator[int]) -> List[INode]:
    inodes: List[INode] = []
    pending: _Pending = [(tree_root, tree)]
    while pending:
        root, subtree = pending.pop()
        if isinstance(subtree, TreeEra):
            var = _new_var(counter)
            inodes.append(INode(ERA, (root, var, var)))
        elif isinstance(subtree, TreeCtr):
            _process_ctr(inodes, subtree.lab, subtree.ports, net_root, root, pending, counter)
        elif isinstance(subtree, TreeVar):
            raise ValueError(f"unexpected variable '{subtree.nam}' in tree position")
        elif isinstance(subtree, TreeRef):
            var = _new_var(counter)
            inodes.append(INode(NodeKind(NodeTag.REF, def_name=subtree.nam), (root, var, var)))
        elif isinstance(subtree, TreeNum):
            var = _new_var(counter)
            inodes.append(INode(NodeKind(NodeTag.NUM, val=subtree.val), (root, var, var)))
        elif isinstance(subtree, TreeOp):
            fst = _node_subtree(subtree.fst, net_root, pending, counter)
            snd = _node_subtree(subtree.snd, net_root, pending, counter)
            inodes.append(INode(OPR, (root, fst, snd)))
        elif isinstance(subtree, TreeMat):
            zero = _node_subtree(subtree.zero, net_root, pending, counter)
            succ = _node_subtree(subtree.succ, net_root, pending, counter)
            sel_var = _new_var(counter)
            con = NodeKind(NodeTag.CTR, ctr=CtrKind(CtrKind.CON))
            inodes.append(INode(con, (sel_var, zero, succ)))
            ret = _node_subtree(subtree.out, net_root, pending, counter)
            inodes.append(INode(MAT, (root, sel_var, ret)))
        else:
            raise TypeError(f"not a tree: {subtree!r}")
    return inodes


def inodes_to_inet(inodes: List[INode]) -> INet:
    """Build an `INet`, linking ports that share a wire name; '_' goes to the root."""
    inet = INet()
    open_wires: dict = {}
    for inode in inodes:
        node = inet.new_node(inode.kind)
        for slot, name in enumerate(inode.ports):
            p = Port(node, slot)
            if name == "_":
                inet.link(p, ROOT)
            elif name in open_wires:
                inet.link(p, open_wires.pop(name))
            else:
                open_wires[name] = p
    return inet