#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Shared helpers for checking peptide molecules built by pepgraph.
"""

from typing import List, Optional, Set, Tuple

from rdkit import Chem

_BACKBONE = Chem.MolFromSmarts("[N;$(NCC(=O))]-[C;$(C(N)C=O)]-[C;$(C=O)]")

Triple = Tuple[int, int, int]


def clean_smiles(smiles: str) -> str:
    """RDKit canonical isomeric SMILES; unparsable input is returned unchanged."""
    mol = Chem.MolFromSmiles(smiles)
    if mol is None:
        return smiles
    return Chem.MolToSmiles(mol, isomericSmiles=True)


def _peptide_bond(mol: Chem.Mol, prev: Triple, curr: Triple) -> bool:
    bond = mol.GetBondBetweenAtoms(prev[2], curr[0])
    if bond is None or bond.GetBondType() != Chem.BondType.SINGLE:
        return False
    carbon = mol.GetAtomWithIdx(prev[2])
    return any(
        b.GetBondType() == Chem.BondType.DOUBLE and b.GetOtherAtom(carbon).GetAtomicNum() == 8
        for b in carbon.GetBonds()
    )


def get_backbone_atoms(mol: Chem.Mol) -> Tuple[Triple, ...]:
    """
    Ordered (N, CA, C) triples of the peptide backbone, N-terminus first.

    Chains are followed through peptide bonds only, so side-chain amides (Asn,
    Gln, Pyl) are not mistaken for backbone. For a head-to-tail cycle there is
    no free N-terminus and the walk starts at the triple with the lowest N index.
    """
    matches: List[Triple] = sorted(mol.GetSubstructMatches(_BACKBONE))
    if len(matches) <= 1:
        return tuple(matches)

    by_n = {m[0]: m for m in matches}
    backbone_atoms: Set[int] = {idx for m in matches for idx in m}

    def has_backbone_predecessor(match: Triple) -> bool:
        n_atom = mol.GetAtomWithIdx(match[0])
        return any(
            nb.GetIdx() in backbone_atoms and nb.GetIdx() != match[1]
            for nb in n_atom.GetNeighbors()
        )

    starts = [m for m in matches if not has_backbone_predecessor(m)] or matches[:1]

    best: List[Triple] = []
    for start in starts:
        chain = [start]
        seen = {start[0]}
        while True:
            c_atom = mol.GetAtomWithIdx(chain[-1][2])
            nxt = None
            for nb in c_atom.GetNeighbors():
                candidate = by_n.get(nb.GetIdx())
                if candidate and candidate[0] not in seen and _peptide_bond(mol, chain[-1], candidate):
                    nxt = candidate
                    break
            if nxt is None:
                break
            chain.append(nxt)
            seen.add(nxt[0])
        if len(chain) > len(best):
            best = chain
    return tuple(best)


def is_head_to_tail_cyclic(mol: Chem.Mol, chain: Optional[Tuple[Triple, ...]] = None) -> bool:
    """True when the last backbone carbonyl is bonded to the first backbone N."""
    chain = chain if chain is not None else get_backbone_atoms(mol)
    if len(chain) < 2:
        return False
    return _peptide_bond(mol, chain[-1], chain[0])


def find_alpha_carbon(mol: Chem.Mol) -> Optional[int]:
    """Index of the first backbone CA, or None."""
    chain = get_backbone_atoms(mol)
    return chain[0][1] if chain else None
