"""Tests for pepgraph/crosslinks.py."""

import itertools

import pytest
from rdkit import Chem

from pepgraph.crosslinks import CrossLink, resolve_crosslinks
from pepgraph.errors import AnchorAlreadyUsed, CrossLinkError, PositionError, UnknownAnchor
from pepgraph.frag_utils import AnchorRole
from pepgraph.graph import BACKBONE, CROSSLINK, MolecularGraph
from pepgraph.monomers import ResidueIdentity
from pepgraph.seq2graph import assemble_backbone, build, build_sequence

R = ResidueIdentity
S = AnchorRole.SIDE_CHAIN


class TestCrossLink:
    def test_normalized(self):
        link = CrossLink(5, S, 2, S)
        assert link.normalized() == CrossLink(2, S, 5, S)
        assert CrossLink(2, S, 5, S).normalized() == CrossLink(2, S, 5, S)

    def test_same_position_normalized_by_role(self):
        link = CrossLink(3, S, 3, AnchorRole.N_TERM)
        assert link.normalized().first_role is AnchorRole.N_TERM

    def test_str(self):
        assert str(CrossLink.side_chains(1, 2)) == "1:side-chain-2:side-chain"


class TestResolveCrossLinks:
    def test_disulfide(self, to_smiles, canonical):
        plain = build([R.CYS, R.CYS])
        linked = build([R.CYS, R.CYS], links=[CrossLink.side_chains(1, 2)])
        assert linked.num_atoms == plain.num_atoms
        assert linked.num_bonds == plain.num_bonds + 1
        assert len(linked.bonds_of_kind(BACKBONE)) == 1
        assert len(linked.bonds_of_kind(CROSSLINK)) == 1
        (a, b), = linked.bonds_of_kind(CROSSLINK)
        assert {linked.atom(a).GetSymbol(), linked.atom(b).GetSymbol()} == {"S"}
        mol = Chem.MolFromSmiles(to_smiles(linked))
        assert mol.HasSubstructMatch(Chem.MolFromSmarts("CSSC"))
        assert canonical(to_smiles(linked)) == canonical("N[C@H]1CSSC[C@@H](C(=O)O)NC1=O")

    def test_lactam_bridge(self, to_mol):
        graph = build([R.LYS, R.ALA, R.ALA, R.GLU], links=[CrossLink.side_chains(1, 4)])
        mol = to_mol(graph)
        ring_sizes = sorted(len(r) for r in mol.GetRingInfo().AtomRings())
        assert ring_sizes == [18]

    def test_unknown_anchor(self):
        with pytest.raises(UnknownAnchor):
            build([R.CYS, R.ALA], links=[CrossLink.side_chains(1, 2)])

    def test_same_anchor_twice(self):
        links = [CrossLink.side_chains(1, 2), CrossLink.side_chains(1, 3)]
        with pytest.raises(AnchorAlreadyUsed):
            build([R.CYS, R.CYS, R.CYS], links=links)

    def test_duplicate_declaration(self):
        links = [CrossLink.side_chains(1, 2), CrossLink.side_chains(2, 1)]
        with pytest.raises(AnchorAlreadyUsed):
            build([R.CYS, R.CYS], links=links)

    def test_both_sides_same_anchor(self):
        with pytest.raises(AnchorAlreadyUsed):
            build([R.CYS, R.CYS], links=[CrossLink.side_chains(1, 1)])

    def test_backbone_anchor_already_used(self):
        link = CrossLink(1, AnchorRole.C_TERM, 3, S)
        with pytest.raises(AnchorAlreadyUsed):
            build([R.GLY, R.GLY, R.LYS], links=[link])

    def test_free_terminus_can_link(self):
        link = CrossLink(1, AnchorRole.N_TERM, 3, S)
        graph = build([R.GLY, R.GLY, R.GLU], links=[link])
        assert len(graph.bonds_of_kind(CROSSLINK)) == 1

    @pytest.mark.parametrize("position", [0, 3, -1])
    def test_position_out_of_range(self, position):
        with pytest.raises(PositionError):
            build([R.CYS, R.CYS], links=[CrossLink.side_chains(1, position)])

    def test_only_single_bonds(self):
        link = CrossLink(1, S, 2, S, order=Chem.BondType.DOUBLE)
        with pytest.raises(CrossLinkError):
            build([R.CYS, R.CYS], links=[link])

    def test_failed_validation_consumes_nothing(self):
        graph = MolecularGraph()
        instances = assemble_backbone(graph, [R.CYS, R.ALA])
        with pytest.raises(UnknownAnchor):
            resolve_crosslinks(graph, instances, [CrossLink.side_chains(1, 2)])
        assert not instances[0].is_consumed(S)

    def test_declaration_order_independent(self, to_events):
        seq = [R.CYS, R.LYS, R.CYS, R.GLU, R.CYS, R.CYS]
        links = [
            CrossLink.side_chains(1, 3),
            CrossLink.side_chains(4, 2),
            CrossLink.side_chains(6, 5),
        ]
        reference = to_events(build(seq, links=links))
        for perm in itertools.permutations(links):
            assert to_events(build(seq, links=list(perm))) == reference
        flipped = [CrossLink(l.second, l.second_role, l.first, l.first_role) for l in links]
        assert to_events(build(seq, links=flipped)) == reference

    def test_error_independent_of_order(self):
        links = [CrossLink.side_chains(1, 2), CrossLink.side_chains(3, 1), CrossLink.side_chains(2, 4)]
        messages = set()
        for perm in itertools.permutations(links):
            with pytest.raises(AnchorAlreadyUsed) as excinfo:
                build([R.CYS] * 4, links=list(perm))
            messages.add(str(excinfo.value))
        assert len(messages) == 1

    def test_sequence_links(self, to_mol):
        mol = to_mol(build_sequence("Cys-Gly-Cys-[link(1,3)]"))
        assert mol.HasSubstructMatch(Chem.MolFromSmarts("CSSC"))

    def test_lanthionine_bridge(self, to_mol):
        linked = build([R.CYS, R.LAN], links=[CrossLink.side_chains(1, 2)])
        assert linked.num_atoms == build([R.CYS, R.ALA]).num_atoms
        (a, b), = linked.bonds_of_kind(CROSSLINK)
        assert sorted(linked.atom(i).GetSymbol() for i in (a, b)) == ["C", "S"]
        mol = to_mol(linked)
        assert mol.HasSubstructMatch(Chem.MolFromSmarts("[CH2][SX2][CH2]"))
        assert not mol.HasSubstructMatch(Chem.MolFromSmarts("SS"))
        assert sorted(len(r) for r in mol.GetRingInfo().AtomRings()) == [7]

    def test_lanthionine_from_sequence(self, to_mol):
        mol = to_mol(build_sequence("Lan-Gly-Cys-[link(1,3)]"))
        assert mol.HasSubstructMatch(Chem.MolFromSmarts("CSC"))
        centers = sorted(label for _, label in Chem.FindMolChiralCenters(mol, includeUnassigned=True))
        assert centers == ["R", "R"]

    def test_free_lanthionine_half_is_alanine(self, to_smiles, canonical):
        assert canonical(to_smiles(build([R.LAN]))) == canonical(to_smiles(build([R.ALA])))
