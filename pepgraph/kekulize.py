"""
Template-driven kekulization.

Only rings flagged aromatic by their template are touched. Each ring is walked
once from the template's start bond; a bond becomes double when both of its
atoms still need a double bond, otherwise single. There is no general
aromaticity perception here: the start bond encodes what a solver would have to
work out for odd rings and pyrrole-type nitrogens.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence, Set

from rdkit import Chem

from pepgraph.errors import KekulizationError
from pepgraph.frag_utils import ResidueInstance
from pepgraph.graph import MolecularGraph

logger = logging.getLogger(__name__)


def _has_double_bond(atom: Chem.Atom) -> bool:
    return any(b.GetBondType() == Chem.BondType.DOUBLE for b in atom.GetBonds())


def needs_double_bond(graph: MolecularGraph, idx: int) -> bool:
    """Aromatic C, or pyridine-type N, that has no double bond yet."""
    atom = graph.atom(idx)
    if not atom.GetIsAromatic() or _has_double_bond(atom):
        return False
    if atom.GetAtomicNum() == 6:
        return True
    if atom.GetAtomicNum() == 7:
        return atom.GetFormalCharge() == 0 and atom.GetDegree() == 2 and atom.GetNumExplicitHs() == 0
    return False


def _max_valence(atom: Chem.Atom) -> int:
    # charged atoms take the valence of their isoelectronic neighbour (N+ like C)
    return Chem.GetPeriodicTable().GetDefaultValence(atom.GetAtomicNum() - atom.GetFormalCharge())


def _check_valences(graph: MolecularGraph, atoms: Iterable[int], label: str) -> None:
    for idx in atoms:
        atom = graph.atom(idx)
        # atoms shared with a ring that is still pending are checked once it is assigned
        if any(b.GetBondType() == Chem.BondType.AROMATIC for b in atom.GetBonds()):
            continue
        total = graph.bond_order_sum(idx) + atom.GetNumExplicitHs()
        if total > _max_valence(atom):
            raise KekulizationError(f"{label}: atom {idx} ({atom.GetSymbol()}) exceeds its valence ({total:g}).")


def kekulize_ring(graph: MolecularGraph, cycle: Sequence[int], start: int = 0) -> None:
    """Assign single/double orders to the pending bonds of one ring."""
    size = len(cycle)
    needy: Set[int] = {idx for idx in cycle if needs_double_bond(graph, idx)}
    matched: Set[int] = set()
    for k in range(size):
        a, b = cycle[(start + k) % size], cycle[(start + k + 1) % size]
        bond = graph.bond(a, b)
        if bond is None:
            raise KekulizationError(f"Ring atoms {a} and {b} are not bonded.")
        if bond.GetBondType() != Chem.BondType.AROMATIC:
            continue
        if a in needy and b in needy and a not in matched and b not in matched:
            graph.set_bond_order(a, b, Chem.BondType.DOUBLE)
            matched.update((a, b))
        else:
            graph.set_bond_order(a, b, Chem.BondType.SINGLE)

    unmatched = sorted(needy - matched)
    if unmatched:
        raise KekulizationError(f"Ring {tuple(cycle)}: atoms {unmatched} get no double bond from start bond {start}.")
    _check_valences(graph, cycle, f"Ring {tuple(cycle)}")


def kekulize(graph: MolecularGraph, instances: Iterable[ResidueInstance]) -> int:
    """Kekulize every template-flagged ring; returns the number of rings processed."""
    ring_atoms: Set[int] = set()
    count = 0
    for instance in instances:
        for cycle, start in instance.rings:
            kekulize_ring(graph, cycle, start)
            ring_atoms.update(cycle)
            count += 1

    leftover = [
        (b.GetBeginAtomIdx(), b.GetEndAtomIdx())
        for b in graph.to_mol().GetBonds()
        if b.GetBondType() == Chem.BondType.AROMATIC
    ]
    if leftover:
        raise KekulizationError(f"Aromatic bonds outside any flagged ring: {leftover}")
    # ring atoms deferred by the per-ring checks because they sat next to a pending ring
    _check_valences(graph, sorted(ring_atoms), "Fused rings")
    for idx in sorted(ring_atoms):
        graph.set_aromatic(idx, False)
    logger.debug("Kekulized %d aromatic rings", count)
    return count
