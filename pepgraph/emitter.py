"""
Graph emitter.

Walks a finished ``MolecularGraph`` once and drives a ``GraphVisitor`` with a
deterministic event stream:

    root(atom)            first atom
    extend(order, atom)   bond from the current atom to a new atom, which becomes current
    join(order, rnum)     one end of a ring-closure bond at the current atom
    pop(depth)            go back ``depth`` atoms along the current path

The emitter knows nothing about notation. Traversal is a depth-first search
from ``graph.root`` visiting neighbours in ascending atom index; ring numbers
are the lowest free positive integers.
"""

from __future__ import annotations

import abc
from collections import defaultdict, namedtuple
from typing import Dict, List, Optional

from rdkit import Chem

from pepgraph.errors import GraphError
from pepgraph.graph import MolecularGraph, is_odd_permutation

AtomEvent = namedtuple("AtomEvent", ["index", "symbol", "charge", "aromatic", "hydrogens", "chirality"])


class GraphVisitor(abc.ABC):
    """Consumer of the emitter's event stream."""

    @abc.abstractmethod
    def root(self, atom: AtomEvent) -> None:
        ...

    @abc.abstractmethod
    def extend(self, order: Chem.BondType, atom: AtomEvent) -> None:
        ...

    @abc.abstractmethod
    def join(self, order: Chem.BondType, rnum: int) -> None:
        ...

    @abc.abstractmethod
    def pop(self, depth: int) -> None:
        ...


class _SpanningTree:
    """Depth-first spanning tree plus the ring-closure bonds left over."""

    def __init__(self, graph: MolecularGraph, root: int):
        self.rank: Dict[int, int] = {root: 0}
        self.parent: Dict[int, Optional[int]] = {root: None}
        self.children: Dict[int, List[int]] = defaultdict(list)
        # closes[x]: earlier atoms x rings back to; opens[y]: later atoms that ring back to y
        self.closes: Dict[int, List[int]] = defaultdict(list)
        self.opens: Dict[int, List[int]] = defaultdict(list)

        stack = [(root, iter(graph.neighbors(root)))]
        while stack:
            atom, nbrs = stack[-1]
            for nb in nbrs:
                if nb not in self.rank:
                    self.rank[nb] = len(self.rank)
                    self.parent[nb] = atom
                    self.children[atom].append(nb)
                    stack.append((nb, iter(graph.neighbors(nb))))
                    break
                if nb != self.parent[atom] and self.rank[nb] < self.rank[atom]:
                    self.closes[atom].append(nb)
                    self.opens[nb].append(atom)
            else:
                stack.pop()

        if len(self.rank) != graph.num_atoms:
            raise GraphError(
                f"Graph is disconnected: {graph.num_atoms - len(self.rank)} atoms unreachable from atom {root}."
            )
        for partners in list(self.closes.values()) + list(self.opens.values()):
            partners.sort(key=self.rank.__getitem__)


def _chirality(graph: MolecularGraph, idx: int, emitted: List[Optional[int]]) -> Optional[str]:
    stereo = graph.stereo.get(idx)
    if stereo is None:
        return None
    if set(emitted) != set(stereo.reference) or len(emitted) != len(stereo.reference):
        raise GraphError(f"Neighbours of chiral atom {idx} changed after instantiation.")
    clockwise = stereo.clockwise != is_odd_permutation(emitted, stereo.reference)
    return "@@" if clockwise else "@"


def _atom_event(graph: MolecularGraph, idx: int, emitted: List[Optional[int]]) -> AtomEvent:
    atom = graph.atom(idx)
    return AtomEvent(
        index=idx,
        symbol=atom.GetSymbol(),
        charge=atom.GetFormalCharge(),
        aromatic=atom.GetIsAromatic(),
        hydrogens=atom.GetNumExplicitHs() if atom.GetNoImplicit() else None,
        chirality=_chirality(graph, idx, emitted),
    )


def emit(graph: MolecularGraph, visitor: GraphVisitor) -> GraphVisitor:
    """Drive ``visitor`` with the event stream of ``graph`` and return it."""
    graph.freeze()
    root = graph.root if graph.root is not None else 0
    tree = _SpanningTree(graph, root)

    free_rnums: List[int] = []
    next_rnum = 1
    ring_of: Dict[tuple, int] = {}

    def visit(idx: int, order: Optional[Chem.BondType]) -> None:
        nonlocal next_rnum
        parent = tree.parent[idx]
        emitted: List[Optional[int]] = [] if parent is None else [parent]
        if idx in graph.stereo and None in graph.stereo[idx].reference:
            emitted.append(None)
        emitted.extend(tree.closes[idx])
        emitted.extend(tree.opens[idx])
        emitted.extend(tree.children[idx])

        event = _atom_event(graph, idx, emitted)
        if order is None:
            visitor.root(event)
        else:
            visitor.extend(order, event)

        released = []
        for partner in tree.closes[idx]:
            rnum = ring_of.pop((partner, idx))
            visitor.join(graph.bond(partner, idx).GetBondType(), rnum)
            released.append(rnum)
        for partner in tree.opens[idx]:
            if free_rnums:
                rnum = free_rnums.pop(0)
            else:
                rnum = next_rnum
                next_rnum += 1
            ring_of[(idx, partner)] = rnum
            visitor.join(graph.bond(idx, partner).GetBondType(), rnum)
        free_rnums.extend(released)
        free_rnums.sort()

    visit(root, None)
    stack = [(root, iter(tree.children[root]))]
    pending = 0
    while stack:
        atom, children = stack[-1]
        child = next(children, None)
        if child is None:
            stack.pop()
            pending += 1
            continue
        if pending:
            visitor.pop(pending)
            pending = 0
        visit(child, graph.bond(atom, child).GetBondType())
        stack.append((child, iter(tree.children[child])))
    return visitor
