"""Shared test fixtures for pepgraph."""

import pytest
from rdkit import Chem

from pepgraph.emitter import emit
from pepgraph.visitors import EventRecorder, MolBuilder, SmilesWriter


@pytest.fixture
def long_sequence() -> str:
    """34-residue antimicrobial peptide used as the end-to-end case."""
    return "KGILGKLGVVQAGVDFVSGVWAGIKQSAKDHPNA"


@pytest.fixture
def to_smiles():
    def _to_smiles(graph) -> str:
        return emit(graph, SmilesWriter()).smiles
    return _to_smiles


@pytest.fixture
def to_mol():
    def _to_mol(graph) -> Chem.Mol:
        return emit(graph, MolBuilder()).mol
    return _to_mol


@pytest.fixture
def to_events():
    def _to_events(graph) -> list:
        return emit(graph, EventRecorder()).events
    return _to_events


@pytest.fixture
def canonical():
    def _canonical(smiles: str) -> str:
        mol = Chem.MolFromSmiles(smiles)
        assert mol is not None, f"RDKit cannot parse {smiles}"
        return Chem.MolToSmiles(mol, isomericSmiles=True)
    return _canonical
