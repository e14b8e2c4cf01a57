"""Tests for pepgraph/seq2graph_cycle.py."""

import pytest
from rdkit import Chem

from pepgraph.crosslinks import CrossLink
from pepgraph.errors import CyclizationError
from pepgraph.frag_utils import AnchorRole
from pepgraph.graph import CAP, CYCLIZATION, MolecularGraph
from pepgraph.monomers import ResidueIdentity
from pepgraph.seq2graph import assemble_backbone, build, build_sequence
from pepgraph.seq2graph_cycle import cyclize
from pepgraph.utils import get_backbone_atoms, is_head_to_tail_cyclic

R = ResidueIdentity


class TestCyclize:
    def test_diketopiperazine(self, to_smiles, canonical):
        graph = build([R.GLY, R.GLY], cyclic=True)
        assert graph.num_atoms == 8
        assert len(graph.bonds_of_kind(CYCLIZATION)) == 1
        assert graph.bonds_of_kind(CAP) == []
        assert canonical(to_smiles(graph)) == canonical("O=C1CNC(=O)CN1")

    def test_cyclic_drops_one_more_atom(self):
        seq = [R.ALA, R.PHE, R.LYS, R.PRO]
        assert build(seq, cyclic=True).num_atoms == build(seq).num_atoms - 1

    def test_returns_bonded_pair(self):
        graph = MolecularGraph()
        instances = assemble_backbone(graph, [R.GLY, R.ALA, R.GLY])
        c_idx, n_idx = cyclize(graph, instances)
        assert c_idx == instances[-1].anchor(AnchorRole.C_TERM)
        assert n_idx == instances[0].anchor(AnchorRole.N_TERM)
        assert instances[0].is_consumed(AnchorRole.N_TERM)

    def test_single_residue_rejected(self):
        with pytest.raises(CyclizationError):
            build([R.GLY], cyclic=True)
        with pytest.raises(CyclizationError):
            build_sequence("[cyclo]-Ala")

    def test_capped_terminus(self):
        with pytest.raises(CyclizationError):
            build([R.ALA, R.GLY], cyclic=True, n_cap="ac")
        with pytest.raises(CyclizationError):
            build([R.ALA, R.GLY], cyclic=True, c_cap="am")

    def test_crosslinked_terminus(self):
        with pytest.raises(CyclizationError):
            build([R.GLY, R.ALA, R.LYS], cyclic=True,
                  links=[CrossLink(1, AnchorRole.N_TERM, 3, AnchorRole.SIDE_CHAIN)])
        with pytest.raises(CyclizationError):
            build([R.GLU, R.ALA, R.GLY], cyclic=True,
                  links=[CrossLink(1, AnchorRole.SIDE_CHAIN, 3, AnchorRole.C_TERM)])

    def test_cyclic_with_side_chain_link(self, to_mol):
        graph = build([R.CYS, R.GLY, R.GLY, R.CYS], cyclic=True, links=[CrossLink.side_chains(1, 4)])
        mol = to_mol(graph)
        assert mol.GetRingInfo().NumRings() == 2

    def test_backbone_detects_cycle(self, to_mol):
        mol = to_mol(build_sequence("[cyclo]-Gly-Ala-Pro-Phe-Leu"))
        chain = get_backbone_atoms(mol)
        assert len(chain) == 5
        assert is_head_to_tail_cyclic(mol, chain)
        assert not is_head_to_tail_cyclic(to_mol(build_sequence("Gly-Ala-Pro-Phe-Leu")))

    def test_cyclic_smiles_parses(self, to_smiles):
        smiles = to_smiles(build_sequence("[cyclo]-Cys-His-Trp-Tyr"))
        mol = Chem.MolFromSmiles(smiles)
        assert mol is not None
