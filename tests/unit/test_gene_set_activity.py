"""
Unit tests for gene-set scoring and the clustering wrappers.
"""

import logging

import numpy as np
import pandas as pd
import pytest

from immunophenotype.errors import MissingCategoryData
from immunophenotype.utils.gene_set_activity import (
    build_membership,
    hierarchical_clusters,
    method_agreement,
    partition_clusters,
    score_gene_sets,
)


class TestBuildMembership:
    def test_categories_are_case_insensitive(self):
        table = pd.DataFrame({"Gene": ["vegfa", "CD8A", "FAP"], "Type": ["Angiogenesis", "IMMUNE", "stroma"]})
        membership = build_membership(table)
        assert membership.to_dict() == {"VEGFA": "angiogenesis", "CD8A": "immune", "FAP": "stroma"}

    def test_duplicate_rows_collapse(self):
        table = pd.DataFrame({"Gene": ["CD8A", "CD8A"], "Type": ["IMMUNE", "IMMUNE"]})
        assert len(build_membership(table)) == 1

    def test_gene_in_two_categories_rejected(self):
        table = pd.DataFrame({"Gene": ["CD8A", "CD8A"], "Type": ["IMMUNE", "STROMA"]})
        with pytest.raises(ValueError, match="CD8A"):
            build_membership(table)

    def test_unknown_category_rejected(self):
        table = pd.DataFrame({"Gene": ["CD8A"], "Type": ["METABOLISM"]})
        with pytest.raises(ValueError, match="METABOLISM"):
            build_membership(table)

    def test_missing_columns_rejected(self):
        with pytest.raises(ValueError):
            build_membership(pd.DataFrame({"Symbol": ["CD8A"]}))


class TestScoreGeneSets:
    def test_scores_are_category_means(self, expression, membership, triples):
        scores = score_gene_sets(expression, membership)
        assert list(scores.columns) == ["angiogenesis", "immune", "stroma"]
        for sid, triple in triples.items():
            assert tuple(scores.loc[sid]) == pytest.approx(triple)

    def test_mean_over_unequal_genes(self, membership):
        expr = pd.DataFrame(
            {"VEGFA": [1.0], "KDR": [3.0], "CD8A": [-1.0], "GZMB": [0.0], "COL1A1": [0.5], "FAP": [1.5]},
            index=["s1"],
        )
        scores = score_gene_sets(expr, membership)
        assert scores.loc["s1", "angiogenesis"] == pytest.approx(2.0)
        assert scores.loc["s1", "immune"] == pytest.approx(-0.5)
        assert scores.loc["s1", "stroma"] == pytest.approx(1.0)

    def test_non_finite_values_do_not_contribute(self, expression, membership):
        expr = expression.copy()
        expr.loc["INF1", "VEGFA"] = np.nan
        expr.loc["INF1", "CD8A"] = np.inf
        expr.loc["INF1", "GZMB"] = 5.0
        scores = score_gene_sets(expr, membership)
        assert scores.loc["INF1", "angiogenesis"] == pytest.approx(-1.0)
        assert scores.loc["INF1", "immune"] == pytest.approx(5.0)

    def test_empty_category_raises(self, expression, membership):
        expr = expression.copy()
        expr.loc["EXC2", ["COL1A1", "FAP"]] = np.nan
        with pytest.raises(MissingCategoryData) as excinfo:
            score_gene_sets(expr, membership)
        assert excinfo.value.samples == {"EXC2": ["stroma"]}

    def test_category_absent_from_table_raises_for_every_sample(self, expression, membership, triples):
        expr = expression.drop(columns=["CD8A", "GZMB"])
        with pytest.raises(MissingCategoryData) as excinfo:
            score_gene_sets(expr, membership)
        assert set(excinfo.value.samples) == set(triples)
        assert all(cats == ["immune"] for cats in excinfo.value.samples.values())

    def test_one_gene_per_category_is_enough(self, expression, membership):
        expr = expression.drop(columns=["KDR", "GZMB", "FAP"])
        scores = score_gene_sets(expr, membership)
        assert not scores.isna().any().any()

    def test_absent_genes_logged(self, expression, membership, caplog):
        expr = expression.drop(columns=["KDR"])
        with caplog.at_level(logging.WARNING):
            score_gene_sets(expr, membership)
        assert "KDR" in caplog.text

    def test_extra_genes_ignored(self, expression, membership, triples):
        expr = expression.assign(ACTB=100.0)
        scores = score_gene_sets(expr, membership)
        assert tuple(scores.loc["DES1"]) == pytest.approx(triples["DES1"])


class TestClusteringWrappers:
    def test_partition_is_one_based_and_groups_phenotypes(self, separated_expression):
        labels = partition_clusters(separated_expression, n_clusters=3, n_init=10, random_state=0)
        assert set(labels.unique()) == {1, 2, 3}
        for tag in ("INF", "EXC", "DES"):
            group = labels[labels.index.str.startswith(tag)]
            assert group.nunique() == 1

    def test_partition_deterministic_with_fixed_seed(self, separated_expression):
        first = partition_clusters(separated_expression, n_clusters=3, n_init=10, random_state=3)
        second = partition_clusters(separated_expression, n_clusters=3, n_init=10, random_state=3)
        pd.testing.assert_series_equal(first, second)

    def test_hierarchical_groups_phenotypes(self, separated_expression):
        labels = hierarchical_clusters(separated_expression, n_clusters=3, method="complete", metric="euclidean")
        assert set(labels.unique()) == {1, 2, 3}
        for tag in ("INF", "EXC", "DES"):
            assert labels[labels.index.str.startswith(tag)].nunique() == 1

    def test_too_few_samples_rejected(self, separated_expression):
        with pytest.raises(ValueError):
            partition_clusters(separated_expression.iloc[:2], n_clusters=3, n_init=1, random_state=0)
        with pytest.raises(ValueError):
            hierarchical_clusters(separated_expression.iloc[:2], 3, "complete", "euclidean")

    def test_method_agreement(self):
        a = pd.Series({"x": 1, "y": 1, "z": 2})
        relabelled = pd.Series({"x": 5, "y": 5, "z": 9})
        assert method_agreement(a, relabelled) == pytest.approx(1.0)
        assert np.isnan(method_agreement(a, pd.Series({"q": 1})))
