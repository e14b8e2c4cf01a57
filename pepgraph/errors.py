"""Shared error types for pepgraph."""

from __future__ import annotations


class PepgraphError(Exception):
    """Base error type for pepgraph."""


class ResidueError(PepgraphError, ValueError):
    """Raised when the residue sequence itself is unusable."""


class EmptySequence(ResidueError):
    """Raised when a build is requested for a sequence without residues."""


class UnknownResidue(ResidueError, KeyError):
    """Raised when a residue code cannot be resolved to a catalog entry."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else "unknown residue"


class SequenceSyntaxError(ResidueError):
    """Raised when a sequence string contains a malformed token."""


class CrossLinkError(PepgraphError, ValueError):
    """Raised when a cross-link declaration cannot be honoured."""


class UnknownAnchor(CrossLinkError):
    """Raised when a residue template does not declare the requested anchor role."""


class AnchorAlreadyUsed(CrossLinkError):
    """Raised when an anchor would be consumed by a second bond."""


class PositionError(CrossLinkError, IndexError):
    """Raised when a cross-link refers to a residue position outside the sequence."""


class CyclizationError(PepgraphError, ValueError):
    """Raised when head-to-tail closure is impossible."""


class KekulizationError(PepgraphError, RuntimeError):
    """Raised when a flagged aromatic ring has no valid bond-order assignment."""


class TemplateError(PepgraphError, RuntimeError):
    """Raised when catalog template data is malformed."""


class GraphFrozenError(PepgraphError, RuntimeError):
    """Raised when a finished molecular graph is modified."""


class GraphError(PepgraphError, ValueError):
    """Raised when a molecular graph cannot be emitted as built."""
