#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Residue catalog.

A closed set of residue identities and terminal caps, each backed by one HELM
style template SMILES. Templates are parsed once at import and shared,
read-only, by every build.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from pepgraph.errors import TemplateError, UnknownResidue
from pepgraph.frag_utils import AnchorRole, FragmentTemplate, build_template

logger = logging.getLogger(__name__)


class ResidueIdentity(Enum):
    """Supported residues: the 20 standard ones, Sec, Pyl and a few modifications."""

    ALA = ("A", "Ala")
    ARG = ("R", "Arg")
    ASN = ("N", "Asn")
    ASP = ("D", "Asp")
    CYS = ("C", "Cys")
    GLN = ("Q", "Gln")
    GLU = ("E", "Glu")
    GLY = ("G", "Gly")
    HIS = ("H", "His")
    ILE = ("I", "Ile")
    LEU = ("L", "Leu")
    LYS = ("K", "Lys")
    MET = ("M", "Met")
    PHE = ("F", "Phe")
    PRO = ("P", "Pro")
    SER = ("S", "Ser")
    THR = ("T", "Thr")
    TRP = ("W", "Trp")
    TYR = ("Y", "Tyr")
    VAL = ("V", "Val")
    SEC = ("U", "Sec")
    PYL = ("O", "Pyl")
    # modifications without a one-letter code
    DHA = (None, "Dha")
    ORN = (None, "Orn")
    NLE = (None, "Nle")
    AIB = (None, "Aib")
    HYP = (None, "Hyp")
    # Ala whose beta carbon bonds a Cys sulfur: the second half of a lanthionine bridge
    LAN = (None, "Lan")

    def __init__(self, code1: Optional[str], code3: str):
        self.code1 = code1
        self.code3 = code3

    @property
    def code(self) -> str:
        return self.code3

    @classmethod
    def from_code1(cls, code: str) -> "ResidueIdentity":
        try:
            return _BY_CODE1[code]
        except KeyError:
            raise UnknownResidue(f"Unknown one-letter residue code: '{code}'") from None

    @classmethod
    def from_code3(cls, code: str) -> "ResidueIdentity":
        try:
            return _BY_CODE3[code.lower()]
        except KeyError:
            raise UnknownResidue(f"Unknown residue code: '{code}'") from None

    @classmethod
    def resolve(cls, token: str) -> "ResidueIdentity":
        """Resolve a one-letter (upper case) or multi-letter code."""
        token = token.strip()
        if len(token) == 1:
            return cls.from_code1(token.upper())
        return cls.from_code3(token)


class TerminalCap(Enum):
    """Terminal caps; ``terminus`` is the chain end they attach to."""

    ACETYL = ("ac", "N")
    FORMYL = ("formyl", "N")
    AMIDE = ("am", "C")
    METHYL_ESTER = ("ome", "C")

    def __init__(self, code: str, terminus: str):
        self.code = code
        self.terminus = terminus

    @property
    def role(self) -> AnchorRole:
        """Anchor role of the cap that bonds to the chain."""
        return AnchorRole.C_TERM if self.terminus == "N" else AnchorRole.N_TERM

    @classmethod
    def from_code(cls, code: str) -> "TerminalCap":
        for cap in cls:
            if cap.code == code.lower():
                return cap
        raise UnknownResidue(f"Unknown terminal cap: '{code}'")


_BY_CODE1: Dict[str, ResidueIdentity] = {r.code1: r for r in ResidueIdentity if r.code1}
_BY_CODE3: Dict[str, ResidueIdentity] = {r.code3.lower(): r for r in ResidueIdentity}

# identity -> (template SMILES, kekulization start bond per aromatic ring)
# R1 ([*:1]) amine side, R2 ([*:2]) carboxyl side, R3 ([*:3]) side chain.
RESIDUE_SMILES: Dict[ResidueIdentity, Tuple[str, Tuple[int, ...]]] = {
    ResidueIdentity.ALA: ("[H:1]N[C@@H](C)C(=O)[OH:2]", ()),
    ResidueIdentity.ARG: ("[H:1]N[C@@H](CCCNC(N)=N)C(=O)[OH:2]", ()),
    ResidueIdentity.ASN: ("[H:1]N[C@@H](CC(N)=O)C(=O)[OH:2]", ()),
    ResidueIdentity.ASP: ("[H:1]N[C@@H](CC(=O)[OH:3])C(=O)[OH:2]", ()),
    ResidueIdentity.CYS: ("[H:1]N[C@@H](CS[H:3])C(=O)[OH:2]", ()),
    ResidueIdentity.GLN: ("[H:1]N[C@@H](CCC(N)=O)C(=O)[OH:2]", ()),
    ResidueIdentity.GLU: ("[H:1]N[C@@H](CCC(=O)[OH:3])C(=O)[OH:2]", ()),
    ResidueIdentity.GLY: ("[H:1]NCC(=O)[OH:2]", ()),
    # imidazole: double bonds start at the c-n bond after [nH]
    ResidueIdentity.HIS: ("[H:1]N[C@@H](Cc1[nH]cnc1)C(=O)[OH:2]", (2,)),
    ResidueIdentity.ILE: ("[H:1]N[C@@H]([C@@H](C)CC)C(=O)[OH:2]", ()),
    ResidueIdentity.LEU: ("[H:1]N[C@@H](CC(C)C)C(=O)[OH:2]", ()),
    ResidueIdentity.LYS: ("[H:1]N[C@@H](CCCCN[H:3])C(=O)[OH:2]", ()),
    ResidueIdentity.MET: ("[H:1]N[C@@H](CCSC)C(=O)[OH:2]", ()),
    ResidueIdentity.PHE: ("[H:1]N[C@@H](Cc1ccccc1)C(=O)[OH:2]", ()),
    ResidueIdentity.PRO: ("[H:1]N1CCC[C@H]1C(=O)[OH:2]", ()),
    ResidueIdentity.SER: ("[H:1]N[C@@H](CO[H:3])C(=O)[OH:2]", ()),
    ResidueIdentity.THR: ("[H:1]N[C@@H]([C@@H](C)O[H:3])C(=O)[OH:2]", ()),
    ResidueIdentity.TRP: ("[H:1]N[C@@H](Cc1c[nH]c2ccccc12)C(=O)[OH:2]", (0, 0)),
    ResidueIdentity.TYR: ("[H:1]N[C@@H](Cc1ccc(O[H:3])cc1)C(=O)[OH:2]", ()),
    ResidueIdentity.VAL: ("[H:1]N[C@@H](C(C)C)C(=O)[OH:2]", ()),
    ResidueIdentity.SEC: ("[H:1]N[C@@H](C[Se][H:3])C(=O)[OH:2]", ()),
    ResidueIdentity.PYL: ("C[C@@H]1CC=N[C@H]1C(=O)NCCCC[C@@H](C(=O)[OH:2])N[H:1]", ()),
    ResidueIdentity.DHA: ("[H:1]NC(=C)C(=O)[OH:2]", ()),
    ResidueIdentity.ORN: ("[H:1]N[C@@H](CCCN[H:3])C(=O)[OH:2]", ()),
    ResidueIdentity.NLE: ("[H:1]N[C@@H](CCCC)C(=O)[OH:2]", ()),
    ResidueIdentity.AIB: ("[H:1]NC(C)(C)C(=O)[OH:2]", ()),
    ResidueIdentity.HYP: ("C1[C@H](CN([H:1])[C@@H]1C(=O)[OH:2])O[H:3]", ()),
    ResidueIdentity.LAN: ("[H:1]N[C@@H](C[H:3])C(=O)[OH:2]", ()),
}

CAP_SMILES: Dict[TerminalCap, str] = {
    TerminalCap.ACETYL: "CC(=O)[OH:2]",
    TerminalCap.FORMYL: "O=C[OH:2]",
    TerminalCap.AMIDE: "N[H:1]",
    TerminalCap.METHYL_ESTER: "CO[H:1]",
}


def _build_catalog() -> Dict[Union[ResidueIdentity, TerminalCap], FragmentTemplate]:
    missing = [r.code for r in ResidueIdentity if r not in RESIDUE_SMILES]
    missing += [c.code for c in TerminalCap if c not in CAP_SMILES]
    if missing:
        raise TemplateError(f"Catalog has no template for: {', '.join(missing)}")

    catalog: Dict[Union[ResidueIdentity, TerminalCap], FragmentTemplate] = {}
    for identity, (smiles, kekule_start) in RESIDUE_SMILES.items():
        template = build_template(identity, smiles, kekule_start)
        for role in (AnchorRole.N_TERM, AnchorRole.C_TERM):
            if not template.declares(role):
                raise TemplateError(f"Residue template {identity.code} lacks a '{role.label}' anchor.")
        catalog[identity] = template
    for cap, smiles in CAP_SMILES.items():
        template = build_template(cap, smiles)
        if template.roles != (cap.role,):
            raise TemplateError(f"Cap template {cap.code} must declare only '{cap.role.label}'.")
        catalog[cap] = template
    logger.debug("Built %d fragment templates", len(catalog))
    return catalog


CATALOG = _build_catalog()


def lookup(identity: Union[ResidueIdentity, TerminalCap]) -> FragmentTemplate:
    """Template for a residue or cap; total over both enums."""
    return CATALOG[identity]


def residue_table() -> List[dict]:
    """Plain listing of the catalog, residues first."""
    rows = []
    for identity in ResidueIdentity:
        template = CATALOG[identity]
        rows.append({
            "code1": identity.code1,
            "code3": identity.code3,
            "kind": "residue",
            "smiles": template.smiles,
            "anchors": [role.label for role in template.roles],
            "num_atoms": template.num_atoms,
        })
    for cap in TerminalCap:
        template = CATALOG[cap]
        rows.append({
            "code1": None,
            "code3": cap.code,
            "kind": f"{cap.terminus}-cap",
            "smiles": template.smiles,
            "anchors": [role.label for role in template.roles],
            "num_atoms": template.num_atoms,
        })
    return rows
