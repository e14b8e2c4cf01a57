"""Tests for pepgraph/emitter.py and pepgraph/visitors.py."""

import pytest
from rdkit import Chem

from pepgraph.emitter import AtomEvent, GraphVisitor, emit
from pepgraph.errors import GraphError, GraphFrozenError, PepgraphError
from pepgraph.frag_utils import instantiate
from pepgraph.graph import FRAGMENT, MolecularGraph
from pepgraph.monomers import ResidueIdentity, lookup
from pepgraph.seq2graph import build, build_sequence, cap_free_anchors
from pepgraph.visitors import EventRecorder, MolBuilder, SmilesWriter

R = ResidueIdentity
SINGLE = Chem.BondType.SINGLE


def _carbon(index):
    return AtomEvent(index, "C", 0, False, None, None)


class TestEventStream:
    def test_glycine_events(self, to_events):
        events = to_events(build([R.GLY]))
        kinds = [event[0] for event in events]
        # N C C(=O)O: the carbonyl O is a branch, so one pop back to C
        assert kinds == ["root", "extend", "extend", "extend", "pop", "extend"]
        assert events[0][1].symbol == "N"
        # extend events are ("extend", order, atom)
        assert events[1][1] == str(Chem.BondType.SINGLE)
        assert events[3][2].symbol == "O"
        assert events[3][2].hydrogens is None
        assert events[4] == ("pop", 1)
        assert events[5][2].hydrogens == 1

    def test_glycine_smiles(self, to_smiles):
        assert to_smiles(build([R.GLY])) == "NCC(=O)O"

    def test_alanine_smiles(self, to_smiles):
        assert to_smiles(build([R.ALA])) == "N[C@@H](C)C(=O)O"
        assert to_smiles(build([(R.ALA, True)])) == "N[C@H](C)C(=O)O"

    def test_deterministic(self, to_events):
        graph = build_sequence("ac-Cys-Trp-Lys-Glu-Cys-[link(1,5)]-[link(3,4)]-am")
        assert to_events(graph) == to_events(graph)

    def test_every_atom_emitted_once(self, long_sequence, to_events):
        graph = build_sequence(long_sequence)
        events = to_events(graph)
        indices = [e[1].index for e in events if e[0] == "root"] + [e[2].index for e in events if e[0] == "extend"]
        assert sorted(indices) == list(range(graph.num_atoms))

    def test_ring_numbers_reused(self, to_smiles):
        smiles = to_smiles(build([R.PHE, R.PHE]))
        assert "2" not in smiles
        assert smiles.count("1") == 4

    def test_ring_closures_paired(self, to_events):
        events = to_events(build_sequence("[cyclo]-Trp-His-Cys-Cys-[link(3,4)]"))
        joins = [e[2] for e in events if e[0] == "join"]
        for rnum in set(joins):
            assert joins.count(rnum) % 2 == 0

    def test_chiral_root(self, canonical):
        graph = MolecularGraph()
        ala = instantiate(lookup(R.ALA), graph, position=1)
        cap_free_anchors(graph, [ala])
        graph.root = ala.atoms[2]
        smiles = emit(graph, SmilesWriter()).smiles
        assert smiles == "[C@H](N)(C)C(=O)O"
        assert canonical(smiles) == canonical("N[C@@H](C)C(=O)O")
        mol = emit(graph, MolBuilder()).mol
        assert Chem.MolToSmiles(mol) == canonical("N[C@@H](C)C(=O)O")

    def test_bracket_atoms(self, to_smiles):
        assert "[SeH]" in to_smiles(build([R.SEC]))
        linked = to_smiles(build_sequence("Sec-Sec-[link(1,2)]"))
        assert "[Se][Se]" in linked

    def test_graph_frozen_after_emit(self):
        graph = MolecularGraph()
        graph.add_atom(Chem.Atom(6))
        emit(graph, EventRecorder())
        with pytest.raises(GraphFrozenError):
            graph.add_atom(Chem.Atom(6))

    def test_disconnected_graph(self):
        graph = MolecularGraph()
        graph.add_atom(Chem.Atom(6))
        graph.add_atom(Chem.Atom(6))
        with pytest.raises(GraphError) as excinfo:
            emit(graph, EventRecorder())
        assert isinstance(excinfo.value, PepgraphError)
        assert isinstance(excinfo.value, ValueError)

    def test_chiral_neighbours_changed(self):
        graph = MolecularGraph()
        ala = instantiate(lookup(R.ALA), graph, position=1)
        cap_free_anchors(graph, [ala])
        extra = graph.add_atom(Chem.Atom(6))
        graph.add_bond(ala.atoms[2], extra, Chem.BondType.SINGLE, FRAGMENT)
        with pytest.raises(GraphError):
            emit(graph, EventRecorder())

    def test_visitor_is_abstract(self):
        with pytest.raises(TypeError):
            GraphVisitor()


class TestSmilesWriter:
    def test_branches(self):
        writer = SmilesWriter()
        writer.root(_carbon(0))
        writer.extend(SINGLE, _carbon(1))
        writer.extend(SINGLE, _carbon(2))
        writer.pop(1)
        writer.extend(Chem.BondType.DOUBLE, AtomEvent(3, "O", 0, False, None, None))
        assert writer.smiles == "CC(C)=O"

    def test_large_ring_number(self):
        writer = SmilesWriter()
        writer.root(_carbon(0))
        writer.join(SINGLE, 10)
        writer.extend(SINGLE, _carbon(1))
        writer.extend(SINGLE, _carbon(2))
        writer.join(SINGLE, 10)
        assert writer.smiles == "C%10CC%10"

    def test_ring_bond_symbol_at_opening(self):
        writer = SmilesWriter()
        writer.root(_carbon(0))
        writer.join(Chem.BondType.DOUBLE, 1)
        writer.extend(SINGLE, _carbon(1))
        writer.extend(Chem.BondType.DOUBLE, _carbon(2))
        writer.extend(SINGLE, _carbon(3))
        writer.join(Chem.BondType.DOUBLE, 1)
        assert writer.smiles == "C=1C=CC1"

    def test_charged_and_explicit_h(self):
        writer = SmilesWriter()
        writer.root(AtomEvent(0, "N", 1, False, 3, None))
        writer.extend(SINGLE, AtomEvent(1, "C", 0, False, 1, None))
        assert writer.smiles == "[NH3+][CH]"

    def test_empty(self):
        assert SmilesWriter().smiles == ""


class TestMolBuilder:
    def test_matches_writer(self, long_sequence, to_smiles, canonical):
        graph = build_sequence(long_sequence)
        mol = emit(graph, MolBuilder()).mol
        assert Chem.MolToSmiles(mol) == canonical(to_smiles(graph))

    def test_atom_order_follows_emission(self):
        mol = emit(build([R.GLY]), MolBuilder()).mol
        assert [a.GetSymbol() for a in mol.GetAtoms()] == ["N", "C", "C", "O", "O"]

    def test_unclosed_ring(self):
        builder = MolBuilder()
        builder.root(_carbon(0))
        builder.join(SINGLE, 1)
        with pytest.raises(ValueError):
            builder.mol
