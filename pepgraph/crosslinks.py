"""
Deferred cross-link pass.

Cross-links name residues by 1-based sequence position and anchor role, so
they can point forwards or backwards in the chain. They are resolved only after
every residue is in the graph, in a canonical order that does not depend on how
the caller listed them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from rdkit import Chem

from pepgraph.errors import AnchorAlreadyUsed, CrossLinkError, PositionError
from pepgraph.frag_utils import AnchorRole, ResidueInstance
from pepgraph.graph import CROSSLINK, MolecularGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrossLink:
    first: int
    first_role: AnchorRole
    second: int
    second_role: AnchorRole
    order: Chem.BondType = Chem.BondType.SINGLE

    @classmethod
    def side_chains(cls, first: int, second: int) -> "CrossLink":
        """Side-chain to side-chain link, e.g. a Cys-Cys disulfide."""
        return cls(first, AnchorRole.SIDE_CHAIN, second, AnchorRole.SIDE_CHAIN)

    @property
    def sides(self) -> Tuple[Tuple[int, AnchorRole], Tuple[int, AnchorRole]]:
        return (self.first, self.first_role), (self.second, self.second_role)

    def normalized(self) -> "CrossLink":
        """Same link with the lower (position, role) side first."""
        a, b = self.sides
        if _side_key(b) < _side_key(a):
            return CrossLink(b[0], b[1], a[0], a[1], self.order)
        return self

    def sort_key(self):
        a, b = self.normalized().sides
        return _side_key(a) + _side_key(b)

    def __str__(self):
        return f"{self.first}:{self.first_role.label}-{self.second}:{self.second_role.label}"


def _side_key(side: Tuple[int, AnchorRole]) -> Tuple[int, int]:
    return side[0], side[1].value


def _instance_at(instances: Sequence[ResidueInstance], position: int) -> ResidueInstance:
    if not 1 <= position <= len(instances):
        raise PositionError(f"Cross-link position {position} is outside the sequence (1..{len(instances)}).")
    return instances[position - 1]


def resolve_crosslinks(
    graph: MolecularGraph,
    instances: Sequence[ResidueInstance],
    links: Iterable[CrossLink],
) -> List[CrossLink]:
    """Bond every declared cross-link; returns the links in the order they were applied."""
    ordered = sorted((link.normalized() for link in links), key=CrossLink.sort_key)
    for link in ordered:
        if link.order != Chem.BondType.SINGLE:
            raise CrossLinkError(f"Cross-link {link} must be a single bond, got {link.order}.")
        first = _instance_at(instances, link.first)
        second = _instance_at(instances, link.second)
        if link.sides[0] == link.sides[1]:
            raise AnchorAlreadyUsed(f"Cross-link {link} uses the same anchor on both sides.")
        # validate both sides before consuming either
        for instance, role in ((first, link.first_role), (second, link.second_role)):
            instance.anchor(role)
            if instance.is_consumed(role):
                raise AnchorAlreadyUsed(
                    f"Cross-link {link}: anchor '{role.label}' of residue {instance.label} is already used."
                )
        a = first.consume(link.first_role)
        b = second.consume(link.second_role)
        graph.add_bond(a, b, Chem.BondType.SINGLE, CROSSLINK)
        logger.debug("Cross-linked %s and %s (atoms %d-%d)", first.label, second.label, a, b)
    return ordered
