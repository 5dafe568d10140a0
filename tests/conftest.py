"""
Pytest configuration and shared fixtures.

Cohorts are built so that every gene set holds two genes with the same value,
which makes each activity score equal to a literal number.
"""

import os

os.environ.setdefault("MPLBACKEND", "Agg")

from pathlib import Path
from typing import Dict, Tuple

import numpy as np
import pandas as pd
import pytest

GENES = {
    "VEGFA": "ANGIOGENESIS",
    "KDR": "ANGIOGENESIS",
    "CD8A": "IMMUNE",
    "GZMB": "IMMUNE",
    "COL1A1": "STROMA",
    "FAP": "STROMA",
}

# sample -> (angiogenesis, immune, stroma)
TRIPLES: Dict[str, Tuple[float, float, float]] = {
    "INF1": (-1.0, 2.0, -1.0),
    "INF2": (-0.5, 1.5, 0.2),
    "INF3": (-1.0, 1.0, -0.5),
    "EXC1": (-1.0, -2.0, 1.0),
    "EXC2": (0.2, -0.5, 1.5),
    "EXC3": (-0.3, 0.1, 1.2),
    "DES1": (1.0, -1.0, -1.0),
    "DES2": (0.5, -0.2, -0.8),
    "DES3": (-0.2, -1.0, -0.5),
}

# k-means style indices: 2 <-> Inflamed, 3 <-> Excluded, 1 <-> Deserted; INF3 and DES3 disagree
PARTITION = {
    "INF1": 2, "INF2": 2, "INF3": 3,
    "EXC1": 3, "EXC2": 3, "EXC3": 3,
    "DES1": 1, "DES2": 1, "DES3": 2,
}

HIERARCHICAL = {
    "INF1": 1, "INF2": 1, "INF3": 1,
    "EXC1": 2, "EXC2": 2, "EXC3": 2,
    "DES1": 3, "DES2": 3, "DES3": 3,
}


def expression_from_triples(triples: Dict[str, Tuple[float, float, float]]) -> pd.DataFrame:
    rows = {}
    for sid, (a, i, s) in triples.items():
        rows[sid] = {"VEGFA": a, "KDR": a, "CD8A": i, "GZMB": i, "COL1A1": s, "FAP": s}
    frame = pd.DataFrame.from_dict(rows, orient="index")
    frame.index.name = "sample_id"
    return frame


@pytest.fixture
def triples() -> Dict[str, Tuple[float, float, float]]:
    return dict(TRIPLES)


@pytest.fixture
def gene_table() -> pd.DataFrame:
    return pd.DataFrame({"Gene": list(GENES), "Type": list(GENES.values())})


@pytest.fixture
def membership(gene_table) -> pd.Series:
    from immunophenotype.utils.gene_set_activity import build_membership

    return build_membership(gene_table)


@pytest.fixture
def expression() -> pd.DataFrame:
    return expression_from_triples(TRIPLES)


@pytest.fixture
def fixed_clusters() -> pd.DataFrame:
    return pd.DataFrame({"partition": pd.Series(PARTITION), "hierarchical": pd.Series(HIERARCHICAL)})


@pytest.fixture
def separated_expression() -> pd.DataFrame:
    """Three tight, well separated groups of ten samples each, one per phenotype."""
    rng = np.random.default_rng(7)
    bases = {"inf": (-1.0, 2.0, -1.0), "exc": (-1.0, -2.0, 1.0), "des": (1.0, -1.0, -1.0)}
    rows = {}
    for tag, (a, i, s) in bases.items():
        for n in range(10):
            jitter = rng.uniform(-0.05, 0.05, size=6)
            values = np.array([a, a, i, i, s, s]) + jitter
            rows[f"{tag.upper()}_{n:02d}"] = dict(zip(GENES, values))
    frame = pd.DataFrame.from_dict(rows, orient="index")
    frame.index.name = "sample_id"
    return frame


@pytest.fixture
def cohort_files(tmp_path, separated_expression, gene_table) -> Dict[str, Path]:
    expr_path = tmp_path / "expression.csv"
    separated_expression.reset_index().to_csv(expr_path, index=False)
    genes_path = tmp_path / "classificationGenes.csv"
    gene_table.to_csv(genes_path, index=False)
    clinical_path = tmp_path / "clinical.csv"
    clinical = pd.DataFrame(
        {
            "sample_id": separated_expression.index,
            "age": np.arange(len(separated_expression)) + 40,
            "sex": ["F", "M"] * (len(separated_expression) // 2),
        }
    )
    clinical.to_csv(clinical_path, index=False)
    return {"expression": expr_path, "genes": genes_path, "clinical": clinical_path, "output": tmp_path / "out"}
