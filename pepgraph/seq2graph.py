#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Convert peptide sequences to molecular graphs and SMILES.

Supports:
- One-letter strings ("KGILG...") and hyphenated three-letter tokens ("Ala-Cys-Gly")
- N-terminal caps (ac, formyl) and C-terminal caps (am, ome)
- D-amino acids ("[dAla]", "[D-Ala]" or a standalone "d" token)
- Head-to-tail cyclization ("[cyclo]")
- Cross-links ("[link(2,7)]", roles N/C/S per side, e.g. "[link(1N,5S)]")

Pipeline: instantiate residues and bond the backbone, resolve cross-links,
cyclize, restore leaving groups on free anchors, kekulize, then emit.
"""

import argparse
import logging
import re
from collections import namedtuple
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from rdkit import Chem

from pepgraph.crosslinks import CrossLink, resolve_crosslinks
from pepgraph.emitter import emit
from pepgraph.errors import EmptySequence, PepgraphError, ResidueError, SequenceSyntaxError, UnknownResidue
from pepgraph.frag_utils import AnchorRole, ResidueInstance, cap_anchor, instantiate
from pepgraph.graph import BACKBONE, CAP, MolecularGraph
from pepgraph.kekulize import kekulize
from pepgraph.monomers import ResidueIdentity, TerminalCap, lookup
from pepgraph.seq2graph_cycle import cyclize
from pepgraph.utils import clean_smiles
from pepgraph.visitors import SmilesWriter

logger = logging.getLogger(__name__)

DEFAULT_INPUT = Path("seq2smi_input.txt")
DEFAULT_OUTPUT = Path("seq2smi_out.txt")

ParsedSequence = namedtuple("ParsedSequence", ["residues", "n_cap", "c_cap", "links", "cyclic"])

ResidueSpec = Union[ResidueIdentity, Tuple[ResidueIdentity, bool]]
CapSpec = Union[TerminalCap, str, None]

_LINK_RE = re.compile(r"^link\((\d+)([NCS]?)[,\-](\d+)([NCS]?)\)$", re.IGNORECASE)
_LINK_ROLES = {"": AnchorRole.SIDE_CHAIN, "S": AnchorRole.SIDE_CHAIN, "N": AnchorRole.N_TERM, "C": AnchorRole.C_TERM}
_N_CAPS = {cap.code for cap in TerminalCap if cap.terminus == "N"}
_C_CAPS = {cap.code for cap in TerminalCap if cap.terminus == "C"}


def _tokenize_preserve_brackets(seq: str) -> List[str]:
    """Split on hyphens that are not inside brackets."""
    tokens = []
    buf = []
    depth = 0
    for ch in seq.strip():
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth = max(0, depth - 1)
        elif ch == "-" and depth == 0:
            tokens.append("".join(buf).strip())
            buf = []
            continue
        buf.append(ch)
    tokens.append("".join(buf).strip())
    return [tok for tok in tokens if tok]


def _strip_brackets(token: str) -> str:
    return token[1:-1].strip() if token.startswith("[") and token.endswith("]") else token.strip()


def _parse_link(text: str) -> CrossLink:
    match = _LINK_RE.match(text.replace(" ", ""))
    if not match:
        raise SequenceSyntaxError(f"Invalid cross-link specification: '{text}'")
    first, first_role, second, second_role = match.groups()
    return CrossLink(
        int(first), _LINK_ROLES[first_role.upper()],
        int(second), _LINK_ROLES[second_role.upper()],
    )


def _resolve_residue(code: str, bracketed: bool) -> Tuple[ResidueIdentity, bool]:
    """Resolve a residue token, reading a leading d/D- as a D residue."""
    if bracketed and code[:2].lower() == "d-" and len(code) > 2:
        return ResidueIdentity.resolve(code[2:]), True
    try:
        return ResidueIdentity.resolve(code), False
    except UnknownResidue:
        # "[dAla]" but not "[Dha]": only strip the d if the full code is unknown
        if bracketed and code[:1].lower() == "d" and len(code) > 1:
            return ResidueIdentity.resolve(code[1:]), True
        raise


def parse_sequence(seq: str) -> ParsedSequence:
    """Parse sequence text into residues, caps, cross-links and the cyclic flag."""
    text = seq.strip()
    if text.isalpha() and text.isupper():
        residues = [(ResidueIdentity.from_code1(ch), False) for ch in text]
        return ParsedSequence(residues, None, None, [], False)

    raw_tokens = _tokenize_preserve_brackets(text)
    n_cap = c_cap = None
    if raw_tokens and _strip_brackets(raw_tokens[0]).lower() in _N_CAPS:
        n_cap = TerminalCap.from_code(_strip_brackets(raw_tokens[0]))
        raw_tokens = raw_tokens[1:]
    if raw_tokens and _strip_brackets(raw_tokens[-1]).lower() in _C_CAPS:
        c_cap = TerminalCap.from_code(_strip_brackets(raw_tokens[-1]))
        raw_tokens = raw_tokens[:-1]

    residues: List[Tuple[ResidueIdentity, bool]] = []
    links: List[CrossLink] = []
    cyclic = False
    d_flag_next = False
    for token in raw_tokens:
        bracketed = token.startswith("[") and token.endswith("]")
        inner = _strip_brackets(token)
        lower = inner.lower()
        if lower in {"cyclo", "cycle"}:
            cyclic = True
            continue
        if lower.startswith("link"):
            links.append(_parse_link(inner))
            continue
        if not bracketed and lower in {"d", "d-"}:
            d_flag_next = True
            continue
        identity, is_d = _resolve_residue(inner, bracketed)
        residues.append((identity, is_d or d_flag_next))
        d_flag_next = False

    if d_flag_next:
        raise SequenceSyntaxError(f"Dangling D prefix at the end of '{seq}'")
    return ParsedSequence(residues=residues, n_cap=n_cap, c_cap=c_cap, links=links, cyclic=cyclic)


def _as_cap(cap: CapSpec, terminus: str) -> Optional[TerminalCap]:
    if cap is None:
        return None
    if not isinstance(cap, TerminalCap):
        cap = TerminalCap.from_code(cap)
    if cap.terminus != terminus:
        raise ResidueError(f"'{cap.code}' is not a {terminus}-terminal cap.")
    return cap


def assemble_backbone(
    graph: MolecularGraph,
    residues: Sequence[ResidueSpec],
    n_cap: CapSpec = None,
    c_cap: CapSpec = None,
) -> List[ResidueInstance]:
    """Instantiate residues in order and bond C-term(i-1) to N-term(i)."""
    if not residues:
        raise EmptySequence("Cannot build a peptide from an empty sequence.")
    n_cap = _as_cap(n_cap, "N")
    c_cap = _as_cap(c_cap, "C")

    instances: List[ResidueInstance] = []
    for position, spec in enumerate(residues, start=1):
        identity, is_d = spec if isinstance(spec, tuple) else (spec, False)
        instance = instantiate(lookup(identity), graph, position=position, is_d=is_d)
        if instances:
            prev = instances[-1]
            graph.add_bond(prev.consume(AnchorRole.C_TERM), instance.consume(AnchorRole.N_TERM),
                           Chem.BondType.SINGLE, BACKBONE)
        instances.append(instance)

    graph.root = instances[0].anchor(AnchorRole.N_TERM)
    if n_cap is not None:
        cap = instantiate(lookup(n_cap), graph)
        graph.add_bond(cap.consume(n_cap.role), instances[0].consume(AnchorRole.N_TERM),
                       Chem.BondType.SINGLE, CAP)
        graph.root = min(cap.atoms.values())
    if c_cap is not None:
        cap = instantiate(lookup(c_cap), graph)
        graph.add_bond(instances[-1].consume(AnchorRole.C_TERM), cap.consume(c_cap.role),
                       Chem.BondType.SINGLE, CAP)
    return instances


def cap_free_anchors(graph: MolecularGraph, instances: Iterable[ResidueInstance]) -> int:
    """Put the leaving group back on every anchor nothing was bonded to."""
    count = 0
    for instance in instances:
        for role in instance.free_roles():
            cap_anchor(graph, instance, role)
            count += 1
    return count


def build(
    residues: Sequence[ResidueSpec],
    links: Iterable[CrossLink] = (),
    cyclic: bool = False,
    n_cap: CapSpec = None,
    c_cap: CapSpec = None,
) -> MolecularGraph:
    """Run the full pipeline and return the frozen graph."""
    graph = MolecularGraph()
    instances = assemble_backbone(graph, residues, n_cap=n_cap, c_cap=c_cap)
    applied = resolve_crosslinks(graph, instances, links)
    if cyclic:
        cyclize(graph, instances)
    capped = cap_free_anchors(graph, instances)
    rings = kekulize(graph, instances)
    graph.freeze()
    logger.debug(
        "Built %d residues: %d atoms, %d bonds, %d cross-links, %d capped anchors, %d rings%s",
        len(instances), graph.num_atoms, graph.num_bonds, len(applied), capped, rings,
        " (cyclic)" if cyclic else "",
    )
    return graph


def build_sequence(seq: str) -> MolecularGraph:
    parsed = parse_sequence(seq)
    return build(parsed.residues, links=parsed.links, cyclic=parsed.cyclic,
                 n_cap=parsed.n_cap, c_cap=parsed.c_cap)


def seq2smi(seq: str, canonical: bool = False) -> str:
    """Sequence text to SMILES; ``canonical`` passes the result through RDKit."""
    smiles = emit(build_sequence(seq), SmilesWriter()).smiles
    return clean_smiles(smiles) if canonical else smiles


def sequences_to_smiles(seqs: Iterable[str], canonical: bool = False) -> Dict[str, str]:
    """Convert multiple sequences to SMILES strings."""
    return {seq: seq2smi(seq, canonical=canonical) for seq in seqs}


def _load_sequences(path: Path) -> List[str]:
    return [
        line.strip()
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.startswith("#")
    ]


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Peptide sequence → SMILES converter")
    parser.add_argument("-i", "--input", type=Path, default=DEFAULT_INPUT,
                        help="Input file with one sequence per line.")
    parser.add_argument("-o", "--output", type=Path, default=DEFAULT_OUTPUT,
                        help="Destination TSV file (sequence, SMILES).")
    parser.add_argument("--canonical", action="store_true", help="Write RDKit canonical SMILES.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log build details.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )

    sequences = _load_sequences(args.input)
    results: List[Tuple[str, str]] = []
    failed = 0
    for seq in sequences:
        try:
            results.append((seq, seq2smi(seq, canonical=args.canonical)))
        except PepgraphError as exc:
            failed += 1
            logger.warning("Skipping '%s': %s", seq, exc)

    args.output.write_text("".join(f"{seq}\t{smi}\n" for seq, smi in results), encoding="utf-8")
    logger.info("Wrote %d SMILES to %s (%d failed)", len(results), args.output, failed)
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
