"""Tests for the FastAPI endpoints in webapp/main.py."""

import pytest
from fastapi.testclient import TestClient
from rdkit import Chem

from webapp.main import app


@pytest.fixture
def client():
    return TestClient(app)


class TestSeq2Smi:
    def test_convert(self, client):
        response = client.post("/api/seq2smi", json={"sequence": "ac-Ala-Gly-am"})
        assert response.status_code == 200
        body = response.json()
        assert body["sequence"] == "ac-Ala-Gly-am"
        assert body["num_residues"] == 2
        assert body["backbone_length"] == 2
        assert body["cyclic"] is False
        assert Chem.MolFromSmiles(body["smiles"]).GetNumHeavyAtoms() == body["num_atoms"]

    def test_cyclic(self, client):
        body = client.post("/api/seq2smi", json={"sequence": "[cyclo]-Gly-Ala-Pro"}).json()
        assert body["cyclic"] is True
        assert body["backbone_length"] == 3

    def test_canonical(self, client, canonical):
        body = client.post("/api/seq2smi", json={"sequence": "Ala-Gly", "canonical": True}).json()
        assert body["smiles"] == canonical(body["smiles"])

    @pytest.mark.parametrize("sequence", ["   ", "Ala-Xyz", "[cyclo]-Gly", "Cys-Ala-[link(1,2)]"])
    def test_bad_input(self, client, sequence):
        response = client.post("/api/seq2smi", json={"sequence": sequence})
        assert response.status_code == 400
        assert response.json()["detail"]

    def test_missing_field(self, client):
        assert client.post("/api/seq2smi", json={}).status_code == 422


class TestResidues:
    def test_list(self, client):
        response = client.get("/api/residues")
        assert response.status_code == 200
        rows = {row["code3"]: row for row in response.json()}
        assert rows["His"]["code1"] == "H"
        assert rows["His"]["kind"] == "residue"
        assert rows["Orn"]["code1"] is None
        assert "side-chain" in rows["Cys"]["anchors"]
        assert rows["ac"]["kind"] == "N-cap"
