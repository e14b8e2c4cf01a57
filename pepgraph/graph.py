"""
Molecular graph accumulated during a peptide build.

The graph wraps an RDKit ``RWMol`` and only ever grows: atoms and bonds are
appended by the instantiator, the assembler, the cross-link resolver, the
cyclization handler and the capping pass, and bond orders are fixed by the
kekulizer. Once frozen it is handed to the emitter and stays read-only.
"""

from __future__ import annotations

from collections import namedtuple
from typing import Dict, List, Optional, Sequence, Tuple

from rdkit import Chem

from pepgraph.errors import GraphFrozenError

# Origin of a bond in the finished graph.
FRAGMENT = "fragment"
BACKBONE = "backbone"
CROSSLINK = "crosslink"
CYCLIZATION = "cyclization"
CAP = "cap"

# Tetrahedral centre: neighbours in reference order (None marks the implicit H)
# and whether they turn clockwise looking from the first one.
Stereo = namedtuple("Stereo", ["reference", "clockwise"])


def rdkit_neighbor_order(atom: Chem.Atom) -> List[Optional[int]]:
    """Neighbour order RDKit's chiral tag refers to; a lone implicit H follows the first bond."""
    order: List[Optional[int]] = [b.GetOtherAtomIdx(atom.GetIdx()) for b in atom.GetBonds()]
    if atom.GetNumExplicitHs() == 1:
        order.insert(min(1, len(order)), None)
    return order


def is_odd_permutation(seq: Sequence, reference: Sequence) -> bool:
    """True if ``seq`` is an odd permutation of ``reference``."""
    positions = [list(reference).index(item) for item in seq]
    swaps = 0
    for i in range(len(positions)):
        for j in range(i + 1, len(positions)):
            if positions[i] > positions[j]:
                swaps += 1
    return swaps % 2 == 1


class MolecularGraph:
    """Atoms, bonds and stereo records of one build."""

    def __init__(self):
        self._rw = Chem.RWMol()
        self._kinds: Dict[Tuple[int, int], str] = {}
        self.stereo: Dict[int, Stereo] = {}
        self.root: Optional[int] = None
        self._frozen = False

    def __repr__(self):
        return f"MolecularGraph(atoms={self.num_atoms}, bonds={self.num_bonds}, frozen={self._frozen})"

    @property
    def num_atoms(self) -> int:
        return self._rw.GetNumAtoms()

    @property
    def num_bonds(self) -> int:
        return self._rw.GetNumBonds()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise GraphFrozenError("The molecular graph is frozen and can no longer be modified.")

    def add_atom(self, atom: Chem.Atom) -> int:
        """Append a copy of ``atom`` and return its global index."""
        self._check_mutable()
        idx = self._rw.AddAtom(atom)
        added = self._rw.GetAtomWithIdx(idx)
        added.SetAtomMapNum(0)
        added.SetChiralTag(Chem.ChiralType.CHI_UNSPECIFIED)
        return idx

    def add_bond(self, a: int, b: int, order: Chem.BondType, kind: str) -> None:
        self._check_mutable()
        if a == b:
            raise ValueError(f"Cannot bond atom {a} to itself.")
        if self._rw.GetBondBetweenAtoms(a, b) is not None:
            raise ValueError(f"Atoms {a} and {b} are already bonded.")
        self._rw.AddBond(a, b, order)
        if order == Chem.BondType.AROMATIC:
            self._rw.GetBondBetweenAtoms(a, b).SetIsAromatic(True)
        self._kinds[_key(a, b)] = kind

    def set_bond_order(self, a: int, b: int, order: Chem.BondType) -> None:
        self._check_mutable()
        bond = self.bond(a, b)
        if bond is None:
            raise ValueError(f"Atoms {a} and {b} are not bonded.")
        bond.SetBondType(order)
        bond.SetIsAromatic(order == Chem.BondType.AROMATIC)

    def set_aromatic(self, idx: int, aromatic: bool) -> None:
        self._check_mutable()
        self._rw.GetAtomWithIdx(idx).SetIsAromatic(aromatic)

    def add_explicit_hydrogen(self, idx: int) -> None:
        self._check_mutable()
        atom = self._rw.GetAtomWithIdx(idx)
        atom.SetNumExplicitHs(atom.GetNumExplicitHs() + 1)

    def atom(self, idx: int) -> Chem.Atom:
        return self._rw.GetAtomWithIdx(idx)

    def bond(self, a: int, b: int) -> Optional[Chem.Bond]:
        return self._rw.GetBondBetweenAtoms(a, b)

    def bond_kind(self, a: int, b: int) -> Optional[str]:
        return self._kinds.get(_key(a, b))

    def bonds_of_kind(self, kind: str) -> List[Tuple[int, int]]:
        return sorted(pair for pair, k in self._kinds.items() if k == kind)

    def neighbors(self, idx: int) -> List[int]:
        """Neighbour indices in ascending order."""
        return sorted(nb.GetIdx() for nb in self._rw.GetAtomWithIdx(idx).GetNeighbors())

    def bond_order_sum(self, idx: int) -> float:
        atom = self._rw.GetAtomWithIdx(idx)
        return sum(b.GetBondTypeAsDouble() for b in atom.GetBonds())

    def to_mol(self) -> Chem.Mol:
        """Unsanitized RDKit copy of the graph (no stereo tags)."""
        return Chem.Mol(self._rw)


def _key(a: int, b: int) -> Tuple[int, int]:
    return (a, b) if a < b else (b, a)
