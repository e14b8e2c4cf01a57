from __future__ import annotations

from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from pepgraph.emitter import emit
from pepgraph.errors import PepgraphError
from pepgraph.monomers import residue_table
from pepgraph.seq2graph import build, parse_sequence
from pepgraph.utils import clean_smiles, get_backbone_atoms, is_head_to_tail_cyclic
from pepgraph.visitors import MolBuilder, SmilesWriter


class SequencePayload(BaseModel):
    sequence: str = Field(..., description="Peptide sequence such as ac-Ala-Trp-am or KGILG.")
    canonical: bool = Field(False, description="Return RDKit canonical SMILES.")


class ResidueEntry(BaseModel):
    code1: Optional[str] = None
    code3: str
    kind: str
    smiles: str
    anchors: List[str]
    num_atoms: int


app = FastAPI(title="pepgraph", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/api/seq2smi")
def api_seq2smi(payload: SequencePayload) -> JSONResponse:
    sequence = payload.sequence.strip()
    if not sequence:
        raise HTTPException(status_code=400, detail="Sequence cannot be empty.")
    # each request builds its own graph; the catalog is read-only, so no lock is needed
    try:
        parsed = parse_sequence(sequence)
        graph = build(parsed.residues, links=parsed.links, cyclic=parsed.cyclic,
                      n_cap=parsed.n_cap, c_cap=parsed.c_cap)
    except PepgraphError as exc:  # user input error
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    smiles = emit(graph, SmilesWriter()).smiles
    mol = emit(graph, MolBuilder()).mol
    backbone = get_backbone_atoms(mol)
    return JSONResponse({
        "sequence": sequence,
        "smiles": clean_smiles(smiles) if payload.canonical else smiles,
        "num_atoms": graph.num_atoms,
        "num_residues": len(parsed.residues),
        "backbone_length": len(backbone),
        "cyclic": is_head_to_tail_cyclic(mol, backbone),
    })


@app.get("/api/residues", response_model=List[ResidueEntry])
def api_list_residues() -> List[dict]:
    return residue_table()
