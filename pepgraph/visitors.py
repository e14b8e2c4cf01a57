"""
Consumers of the emitter's event stream.

``SmilesWriter`` renders SMILES text, ``MolBuilder`` materializes a sanitized
RDKit molecule and ``EventRecorder`` keeps the raw events.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from rdkit import Chem

from pepgraph.emitter import AtomEvent, GraphVisitor
from pepgraph.graph import is_odd_permutation, rdkit_neighbor_order

ORGANIC_SUBSET = {"B", "C", "N", "O", "P", "S", "F", "Cl", "Br", "I"}

BOND_SYMBOLS = {
    Chem.BondType.SINGLE: "",
    Chem.BondType.DOUBLE: "=",
    Chem.BondType.TRIPLE: "#",
    Chem.BondType.AROMATIC: "",
}

BOND_VALUES = {
    Chem.BondType.SINGLE: 1.0,
    Chem.BondType.DOUBLE: 2.0,
    Chem.BondType.TRIPLE: 3.0,
    Chem.BondType.AROMATIC: 1.5,
}


class EventRecorder(GraphVisitor):
    """Keeps the event stream as a list of tuples."""

    def __init__(self):
        self.events: List[tuple] = []

    def root(self, atom):
        self.events.append(("root", atom))

    def extend(self, order, atom):
        self.events.append(("extend", str(order), atom))

    def join(self, order, rnum):
        self.events.append(("join", str(order), rnum))

    def pop(self, depth):
        self.events.append(("pop", depth))


class _Node:
    __slots__ = ("event", "order", "children", "rings", "valence")

    def __init__(self, event: AtomEvent, order: Optional[Chem.BondType]):
        self.event = event
        self.order = order
        self.children: List["_Node"] = []
        # (order, rnum, opens)
        self.rings: List[Tuple[Chem.BondType, int, bool]] = []
        self.valence = 0.0


def _implied_hydrogens(symbol: str, valence: float) -> int:
    for allowed in Chem.GetPeriodicTable().GetValenceList(symbol):
        if allowed >= valence:
            return int(allowed - valence)
    return 0


def _ring_label(rnum: int) -> str:
    return str(rnum) if rnum < 10 else f"%{rnum}"


class SmilesWriter(GraphVisitor):
    """Writes SMILES: every child but the last goes in a branch."""

    def __init__(self):
        self._root: Optional[_Node] = None
        self._path: List[_Node] = []
        self._open: set = set()

    def root(self, atom):
        self._root = _Node(atom, None)
        self._path = [self._root]

    def extend(self, order, atom):
        parent = self._path[-1]
        node = _Node(atom, order)
        parent.children.append(node)
        parent.valence += BOND_VALUES[order]
        node.valence += BOND_VALUES[order]
        self._path.append(node)

    def join(self, order, rnum):
        node = self._path[-1]
        opens = rnum not in self._open
        if opens:
            self._open.add(rnum)
        else:
            self._open.discard(rnum)
        node.rings.append((order, rnum, opens))
        node.valence += BOND_VALUES[order]

    def pop(self, depth):
        del self._path[-depth:]

    def _atom_text(self, node: _Node) -> str:
        event = node.event
        symbol = event.symbol.lower() if event.aromatic else event.symbol
        implied = None
        if event.symbol in ORGANIC_SUBSET and not event.aromatic:
            implied = _implied_hydrogens(event.symbol, node.valence)
        bare = (
            event.symbol in ORGANIC_SUBSET
            and not event.chirality
            and not event.charge
            and (event.hydrogens is None or (not event.aromatic and event.hydrogens == implied))
        )
        if bare:
            return symbol
        hcount = event.hydrogens if event.hydrogens is not None else (implied or 0)
        text = "[" + symbol + (event.chirality or "")
        if hcount:
            text += "H" if hcount == 1 else f"H{hcount}"
        if event.charge:
            sign = "+" if event.charge > 0 else "-"
            text += sign if abs(event.charge) == 1 else f"{sign}{abs(event.charge)}"
        return text + "]"

    @property
    def smiles(self) -> str:
        if self._root is None:
            return ""
        out: List[str] = []
        # items are (node, in_branch) or None for a closing parenthesis
        stack: List[Optional[Tuple[_Node, bool]]] = [(self._root, False)]
        while stack:
            item = stack.pop()
            if item is None:
                out.append(")")
                continue
            node, in_branch = item
            if in_branch:
                out.append("(")
            if node.order is not None:
                out.append(BOND_SYMBOLS[node.order])
            out.append(self._atom_text(node))
            for order, rnum, opens in node.rings:
                out.append((BOND_SYMBOLS[order] if opens else "") + _ring_label(rnum))
            if in_branch:
                stack.append(None)
            if node.children:
                stack.append((node.children[-1], False))
                for child in reversed(node.children[:-1]):
                    stack.append((child, True))
        return "".join(out)


class MolBuilder(GraphVisitor):
    """Builds a sanitized RDKit molecule; atom ``i`` is the ``i``-th emitted atom."""

    _PENDING = object()

    def __init__(self):
        self._rw = Chem.RWMol()
        self._path: List[int] = []
        self._emitted: Dict[int, list] = {}
        self._has_parent: Dict[int, bool] = {}
        self._chirality: Dict[int, str] = {}
        self._open: Dict[int, Tuple[int, int, Chem.BondType]] = {}
        self._mol: Optional[Chem.Mol] = None

    def _add(self, event: AtomEvent) -> int:
        atom = Chem.Atom(event.symbol)
        atom.SetFormalCharge(event.charge)
        atom.SetIsAromatic(event.aromatic)
        if event.hydrogens is not None:
            atom.SetNumExplicitHs(event.hydrogens)
            atom.SetNoImplicit(True)
        idx = self._rw.AddAtom(atom)
        self._emitted[idx] = []
        if event.chirality:
            self._chirality[idx] = event.chirality
        self._mol = None
        return idx

    def root(self, atom):
        idx = self._add(atom)
        self._has_parent[idx] = False
        self._path = [idx]

    def extend(self, order, atom):
        prev = self._path[-1]
        idx = self._add(atom)
        self._has_parent[idx] = True
        self._rw.AddBond(prev, idx, order)
        self._emitted[prev].append(idx)
        self._emitted[idx].append(prev)
        self._path.append(idx)

    def join(self, order, rnum):
        current = self._path[-1]
        if rnum in self._open:
            partner, slot, _ = self._open.pop(rnum)
            self._rw.AddBond(partner, current, order)
            self._emitted[partner][slot] = current
            self._emitted[current].append(partner)
        else:
            self._open[rnum] = (current, len(self._emitted[current]), order)
            self._emitted[current].append(self._PENDING)
        self._mol = None

    def pop(self, depth):
        del self._path[-depth:]

    @property
    def mol(self) -> Chem.Mol:
        if self._mol is not None:
            return self._mol
        if self._open:
            raise ValueError(f"Unclosed ring bonds: {sorted(self._open)}")
        for idx, chirality in self._chirality.items():
            atom = self._rw.GetAtomWithIdx(idx)
            emitted = list(self._emitted[idx])
            if atom.GetNumExplicitHs() == 1:
                emitted.insert(1 if self._has_parent[idx] else 0, None)
            odd = is_odd_permutation(emitted, rdkit_neighbor_order(atom))
            clockwise = (chirality == "@@") != odd
            atom.SetChiralTag(
                Chem.ChiralType.CHI_TETRAHEDRAL_CW if clockwise else Chem.ChiralType.CHI_TETRAHEDRAL_CCW
            )
        mol = self._rw.GetMol()
        Chem.SanitizeMol(mol)
        Chem.AssignStereochemistry(mol, cleanIt=True, force=True)
        self._mol = mol
        return mol
