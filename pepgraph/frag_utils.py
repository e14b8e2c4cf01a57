#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Fragment templates and their instantiation into a molecular graph.

Templates are written as HELM corelib style SMILES: every attachment point
carries a mapped leaving atom whose map number is the R-group of the anchor,
e.g. ``[H:1]N[C@@H](C)C(=O)[OH:2]``. The anchor is the single heavy neighbour
of the leaving atom. Leaving atoms are never copied into the graph; if an
anchor is still free at the end of a build the leaving group is put back as a
cap (see ``cap_anchor``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from rdkit import Chem

from pepgraph.errors import AnchorAlreadyUsed, TemplateError, UnknownAnchor
from pepgraph.graph import CAP, FRAGMENT, MolecularGraph, Stereo, rdkit_neighbor_order


class AnchorRole(Enum):
    """Named attachment points; values are the HELM R-group numbers."""

    N_TERM = 1
    C_TERM = 2
    SIDE_CHAIN = 3

    @property
    def label(self) -> str:
        return _ROLE_LABELS[self]

    @classmethod
    def from_label(cls, label: str) -> "AnchorRole":
        for role, text in _ROLE_LABELS.items():
            if text == label.lower():
                return role
        raise ValueError(f"Unknown anchor role: '{label}'")


_ROLE_LABELS = {
    AnchorRole.N_TERM: "n-term",
    AnchorRole.C_TERM: "c-term",
    AnchorRole.SIDE_CHAIN: "side-chain",
}

_CHIRAL_TAGS = (
    Chem.ChiralType.CHI_TETRAHEDRAL_CW,
    Chem.ChiralType.CHI_TETRAHEDRAL_CCW,
)


@dataclass(frozen=True, eq=False)
class FragmentTemplate:
    """Read-only description of one catalog fragment."""

    identity: Any
    smiles: str
    mol: Chem.Mol
    anchors: Mapping[AnchorRole, int]
    leaving: Mapping[AnchorRole, int]
    rings: Tuple[Tuple[int, ...], ...] = ()
    kekule_start: Tuple[int, ...] = ()
    stereo: Mapping[int, Stereo] = field(default_factory=dict)

    @property
    def num_atoms(self) -> int:
        """Heavy atoms of the free fragment, heavy leaving atoms included."""
        return sum(1 for atom in self.mol.GetAtoms() if atom.GetAtomicNum() > 1)

    @property
    def roles(self) -> Tuple[AnchorRole, ...]:
        return tuple(sorted(self.anchors, key=lambda role: role.value))

    def declares(self, role: AnchorRole) -> bool:
        return role in self.anchors


def parse_template_smiles(smiles: str) -> Chem.Mol:
    """Parse a template keeping mapped hydrogens, aromatic flags and stereo as written."""
    params = Chem.SmilesParserParams()
    params.removeHs = False
    params.sanitize = False
    mol = Chem.MolFromSmiles(smiles, params)
    if mol is None:
        raise TemplateError(f"Template SMILES cannot be parsed: {smiles}")
    return mol


def anchors_and_leaving_from_helm(mol: Chem.Mol) -> Tuple[Dict[AnchorRole, int], Dict[AnchorRole, int]]:
    """
    Extract ``{role: anchor_idx}`` and ``{role: leaving_idx}`` from a HELM style template.

    Every atom with a map number is a leaving atom; its only heavy neighbour is
    the anchor and the map number names the role.
    """
    anchors: Dict[AnchorRole, int] = {}
    leaving: Dict[AnchorRole, int] = {}
    for atom in mol.GetAtoms():
        amap = atom.GetAtomMapNum()
        if amap == 0:
            continue
        try:
            role = AnchorRole(amap)
        except ValueError as exc:
            raise TemplateError(f"R-group number {amap} has no anchor role.") from exc
        if role in anchors:
            raise TemplateError(f"R{amap} is declared more than once.")
        heavy_nbrs = [nb for nb in atom.GetNeighbors() if nb.GetAtomicNum() > 1]
        if len(heavy_nbrs) != 1:
            raise TemplateError(
                f"Leaving atom R{amap} needs exactly one heavy neighbour, "
                f"found {len(heavy_nbrs)} (atom idx={atom.GetIdx()}, sym={atom.GetSymbol()})"
            )
        bond = mol.GetBondBetweenAtoms(atom.GetIdx(), heavy_nbrs[0].GetIdx())
        if bond.GetBondType() != Chem.BondType.SINGLE:
            raise TemplateError(f"Leaving atom R{amap} must be single-bonded to its anchor.")
        if atom.GetDegree() != 1:
            raise TemplateError(f"Leaving atom R{amap} must be a terminal atom.")
        anchors[role] = heavy_nbrs[0].GetIdx()
        leaving[role] = atom.GetIdx()
    return anchors, leaving


def _ring_cycle(mol: Chem.Mol, ring_atoms: Sequence[int]) -> Tuple[int, ...]:
    """Order ring atoms around the ring, starting at the lowest index."""
    members = set(ring_atoms)
    start = min(members)
    cycle = [start]
    previous = None
    current = start
    while True:
        candidates = sorted(
            nb.GetIdx()
            for nb in mol.GetAtomWithIdx(current).GetNeighbors()
            if nb.GetIdx() in members and nb.GetIdx() != previous and nb.GetIdx() not in cycle
        )
        if not candidates:
            break
        previous, current = current, candidates[0]
        cycle.append(current)
    if len(cycle) != len(members):
        raise TemplateError(f"Ring atoms {sorted(members)} do not form a simple cycle.")
    return tuple(cycle)


def aromatic_rings(mol: Chem.Mol) -> Tuple[Tuple[int, ...], ...]:
    """Rings made only of atoms written aromatic in the template, in cycle order."""
    rings = []
    for ring in Chem.GetSymmSSSR(mol):
        atoms = list(ring)
        if all(mol.GetAtomWithIdx(idx).GetIsAromatic() for idx in atoms):
            rings.append(_ring_cycle(mol, atoms))
    return tuple(sorted(rings, key=min))


def build_template(identity: Any, smiles: str, kekule_start: Sequence[int] = ()) -> FragmentTemplate:
    """Parse one catalog entry into an immutable template."""
    mol = parse_template_smiles(smiles)
    anchors, leaving = anchors_and_leaving_from_helm(mol)
    rings = aromatic_rings(mol)
    starts = tuple(kekule_start) or (0,) * len(rings)
    if len(starts) != len(rings):
        raise TemplateError(f"[{identity}] needs one kekulization start per aromatic ring ({len(rings)}).")
    for cycle, start in zip(rings, starts):
        if not 0 <= start < len(cycle):
            raise TemplateError(f"[{identity}] kekulization start {start} outside ring of size {len(cycle)}.")

    leaving_atoms = set(leaving.values())
    stereo: Dict[int, Stereo] = {}
    for atom in mol.GetAtoms():
        if atom.GetChiralTag() not in _CHIRAL_TAGS:
            continue
        idx = atom.GetIdx()
        if idx in anchors.values():
            raise TemplateError(f"[{identity}] chiral atom {idx} cannot be an anchor.")
        reference = tuple(rdkit_neighbor_order(atom))
        if leaving_atoms.intersection(reference):
            raise TemplateError(f"[{identity}] chiral atom {idx} is bonded to a leaving atom.")
        stereo[idx] = Stereo(reference, atom.GetChiralTag() == Chem.ChiralType.CHI_TETRAHEDRAL_CW)

    return FragmentTemplate(
        identity=identity,
        smiles=smiles,
        mol=mol,
        anchors=anchors,
        leaving=leaving,
        rings=rings,
        kekule_start=starts,
        stereo=stereo,
    )


@dataclass
class ResidueInstance:
    """One fragment copied into a graph, with its anchors in global indices."""

    template: FragmentTemplate
    atoms: Dict[int, int]
    position: Optional[int] = None
    is_d: bool = False
    consumed: Set[AnchorRole] = field(default_factory=set)

    def __repr__(self):
        return f"ResidueInstance({self.label}, consumed={sorted(r.label for r in self.consumed)})"

    @property
    def identity(self):
        return self.template.identity

    @property
    def label(self) -> str:
        code = self.identity.code
        if self.position is None:
            return code
        return f"{'d' if self.is_d else ''}{code}{self.position}"

    @property
    def rings(self) -> List[Tuple[Tuple[int, ...], int]]:
        return [
            (tuple(self.atoms[idx] for idx in cycle), start)
            for cycle, start in zip(self.template.rings, self.template.kekule_start)
        ]

    def anchor(self, role: AnchorRole) -> int:
        if not self.template.declares(role):
            raise UnknownAnchor(f"Residue {self.label} has no '{role.label}' anchor.")
        return self.atoms[self.template.anchors[role]]

    def is_consumed(self, role: AnchorRole) -> bool:
        return role in self.consumed

    def consume(self, role: AnchorRole) -> int:
        """Mark ``role`` used and return its anchor atom."""
        idx = self.anchor(role)
        if role in self.consumed:
            raise AnchorAlreadyUsed(f"Anchor '{role.label}' of residue {self.label} is already used.")
        self.consumed.add(role)
        return idx

    def free_roles(self) -> List[AnchorRole]:
        return [role for role in self.template.roles if role not in self.consumed]


def instantiate(
    template: FragmentTemplate,
    graph: MolecularGraph,
    position: Optional[int] = None,
    is_d: bool = False,
) -> ResidueInstance:
    """Copy the non-leaving atoms and bonds of ``template`` into ``graph``."""
    leaving_atoms = set(template.leaving.values())
    mapping: Dict[int, int] = {}
    for atom in template.mol.GetAtoms():
        if atom.GetIdx() in leaving_atoms:
            continue
        mapping[atom.GetIdx()] = graph.add_atom(atom)

    for bond in template.mol.GetBonds():
        a, b = bond.GetBeginAtomIdx(), bond.GetEndAtomIdx()
        if a in mapping and b in mapping:
            graph.add_bond(mapping[a], mapping[b], bond.GetBondType(), FRAGMENT)

    for idx, stereo in template.stereo.items():
        reference = tuple(None if nb is None else mapping[nb] for nb in stereo.reference)
        # a D residue is the mirror image: every declared centre inverts
        graph.stereo[mapping[idx]] = Stereo(reference, stereo.clockwise != is_d)

    return ResidueInstance(template=template, atoms=mapping, position=position, is_d=is_d)


def cap_anchor(graph: MolecularGraph, instance: ResidueInstance, role: AnchorRole) -> None:
    """Give a free anchor its leaving group back and mark it consumed."""
    anchor_idx = instance.consume(role)
    leaving_atom = instance.template.mol.GetAtomWithIdx(instance.template.leaving[role])
    if leaving_atom.GetAtomicNum() == 1:
        # organic-subset anchors pick the hydrogen up implicitly
        if graph.atom(anchor_idx).GetNoImplicit():
            graph.add_explicit_hydrogen(anchor_idx)
        return
    cap_idx = graph.add_atom(leaving_atom)
    graph.add_bond(anchor_idx, cap_idx, Chem.BondType.SINGLE, CAP)
