"""pepgraph: peptide residue sequences to molecular graphs."""

from pepgraph.crosslinks import CrossLink, resolve_crosslinks
from pepgraph.emitter import AtomEvent, GraphVisitor, emit
from pepgraph.errors import (
    AnchorAlreadyUsed,
    CrossLinkError,
    CyclizationError,
    EmptySequence,
    GraphError,
    GraphFrozenError,
    KekulizationError,
    PepgraphError,
    PositionError,
    ResidueError,
    SequenceSyntaxError,
    TemplateError,
    UnknownAnchor,
    UnknownResidue,
)
from pepgraph.frag_utils import AnchorRole, FragmentTemplate, ResidueInstance, instantiate
from pepgraph.graph import MolecularGraph
from pepgraph.kekulize import kekulize, kekulize_ring
from pepgraph.monomers import ResidueIdentity, TerminalCap, lookup
from pepgraph.seq2graph import (
    assemble_backbone,
    build,
    build_sequence,
    cap_free_anchors,
    parse_sequence,
    seq2smi,
    sequences_to_smiles,
)
from pepgraph.seq2graph_cycle import cyclize
from pepgraph.visitors import EventRecorder, MolBuilder, SmilesWriter

__version__ = "0.1.0"
