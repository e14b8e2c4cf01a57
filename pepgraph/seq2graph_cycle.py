#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Head-to-tail cyclization.

The last residue's C-terminal anchor is bonded to the first residue's
N-terminal anchor. Both termini must still be free: a terminal cap or a
cross-link on either end makes closure impossible.
"""

from __future__ import annotations

import logging
from typing import Sequence, Tuple

from rdkit import Chem

from pepgraph.errors import CyclizationError
from pepgraph.frag_utils import AnchorRole, ResidueInstance
from pepgraph.graph import CYCLIZATION, MolecularGraph

logger = logging.getLogger(__name__)


def cyclize(graph: MolecularGraph, instances: Sequence[ResidueInstance]) -> Tuple[int, int]:
    """Close the chain; returns the (C-term, N-term) atom pair that was bonded."""
    if len(instances) < 2:
        # a lone residue cannot serve as both ends of its own peptide bond
        raise CyclizationError("Head-to-tail cyclization needs at least two residues.")
    first, last = instances[0], instances[-1]
    for instance, role in ((first, AnchorRole.N_TERM), (last, AnchorRole.C_TERM)):
        if instance.is_consumed(role):
            raise CyclizationError(
                f"Cannot cyclize: '{role.label}' of residue {instance.label} is already used "
                "by a terminal cap or a cross-link."
            )
    n_idx = first.consume(AnchorRole.N_TERM)
    c_idx = last.consume(AnchorRole.C_TERM)
    graph.add_bond(c_idx, n_idx, Chem.BondType.SINGLE, CYCLIZATION)
    logger.debug("Closed %s -> %s (atoms %d-%d)", last.label, first.label, c_idx, n_idx)
    return c_idx, n_idx
