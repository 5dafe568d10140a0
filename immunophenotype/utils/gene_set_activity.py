import logging
from typing import Dict, Mapping, Union

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import fcluster, linkage
from sklearn.cluster import KMeans
from sklearn.metrics import adjusted_rand_score

from immunophenotype.errors import MissingCategoryData
from immunophenotype.labels import SCORE_COLUMNS, GeneSetCategory


def build_membership(table: pd.DataFrame, gene_col: str = "Gene", type_col: str = "Type") -> pd.Series:
    required = {gene_col, type_col}
    if not required.issubset(table.columns):
        raise ValueError(f"Gene-set table must contain columns {required}")
    genes = table[gene_col].astype(str).str.strip().str.upper()
    types = table[type_col].map(lambda raw: GeneSetCategory.parse(raw).value)
    pairs = pd.DataFrame({"gene": genes, "category": types}).drop_duplicates()
    conflicted = pairs["gene"][pairs["gene"].duplicated()].unique().tolist()
    if conflicted:
        raise ValueError(f"Genes assigned to more than one category: {', '.join(sorted(conflicted)[:10])}")
    membership = pd.Series(pairs["category"].to_numpy(), index=pairs["gene"].to_numpy(), name="category")
    membership.index.name = "gene"
    return membership


def score_gene_sets(expr: pd.DataFrame, membership: pd.Series) -> pd.DataFrame:
    genes = [g for g in membership.index if g in expr.columns]
    skipped = sorted(set(membership.index) - set(genes))
    if skipped:
        logging.warning(
            "%d classification gene(s) absent from expression table, skipped: %s",
            len(skipped),
            ", ".join(skipped[:10]),
        )
    values = expr[genes].apply(pd.to_numeric, errors="coerce").replace([np.inf, -np.inf], np.nan)
    # genes x samples, grouped by category; NaN entries do not contribute to the mean
    scores = values.T.groupby(membership.loc[genes]).mean().T
    scores = scores.reindex(index=expr.index, columns=SCORE_COLUMNS)
    empty = scores.isna()
    if empty.to_numpy().any():
        offenders: Dict[str, list] = {}
        for sid, row in empty[empty.any(axis=1)].iterrows():
            offenders[str(sid)] = [col for col in SCORE_COLUMNS if row[col]]
        raise MissingCategoryData(offenders)
    scores.index.name = expr.index.name or "sample_id"
    scores.columns.name = None
    return scores.astype(float)


def partition_clusters(features: pd.DataFrame, n_clusters: int, n_init: int, random_state: int) -> pd.Series:
    if len(features) < n_clusters:
        raise ValueError(f"Need at least {n_clusters} samples for k-means, got {len(features)}.")
    km = KMeans(n_clusters=n_clusters, n_init=n_init, random_state=random_state)
    labels = km.fit_predict(features.to_numpy(dtype=float))
    return pd.Series(labels.astype(int) + 1, index=features.index, name="partition")


def hierarchical_clusters(features: pd.DataFrame, n_clusters: int, method: str, metric: str) -> pd.Series:
    if len(features) < n_clusters:
        raise ValueError(f"Need at least {n_clusters} samples for hierarchical clustering, got {len(features)}.")
    tree = linkage(features.to_numpy(dtype=float), method=method, metric=metric)
    labels = fcluster(tree, t=n_clusters, criterion="maxclust")
    return pd.Series(labels.astype(int), index=features.index, name="hierarchical")


def method_agreement(
    first: Union[pd.Series, Mapping[str, object]],
    second: Union[pd.Series, Mapping[str, object]],
) -> float:
    a = pd.Series(first).astype(str)
    b = pd.Series(second).astype(str)
    shared = a.index.intersection(b.index)
    if shared.empty:
        return float("nan")
    return float(adjusted_rand_score(a.loc[shared], b.loc[shared]))
