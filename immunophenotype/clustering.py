"""K-means / 层次聚类封装，以及统一的样本→簇编号查询。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Union

import pandas as pd

from immunophenotype.errors import IncompleteClusterAssignment
from immunophenotype.utils.gene_set_activity import hierarchical_clusters, partition_clusters

Assignment = Union[pd.Series, Mapping[str, int]]


class ClusterLabelAdapter:
    """把两种聚类输出包装成同一种 sample → cluster index 查询。"""

    def __init__(self, cohort: Iterable[str], partition: Assignment, hierarchical: Assignment):
        self.cohort = pd.Index([str(sid) for sid in cohort], name="sample_id")
        self._partition = self._cover(pd.Series(partition, dtype=object), "partition")
        self._hierarchical = self._cover(pd.Series(hierarchical, dtype=object), "hierarchical")

    def _cover(self, labels: pd.Series, method: str) -> pd.Series:
        labels = labels.dropna()
        labels.index = labels.index.map(str)
        missing = [sid for sid in self.cohort if sid not in labels.index]
        if missing:
            raise IncompleteClusterAssignment(method, missing)
        labels = labels.loc[self.cohort]
        indices = pd.to_numeric(labels, errors="coerce")
        bad = [sid for sid, value in indices.items() if pd.isna(value) or value % 1 != 0]
        if bad:
            raise ValueError(
                f"{method} cluster indices must be integers; got non-integer labels for "
                f"{len(bad)} samples: {', '.join(bad[:10])}"
            )
        return indices.astype(int).rename(method)

    def partition_index(self, sample_id: str) -> int:
        return int(self._partition.loc[sample_id])

    def hierarchical_index(self, sample_id: str) -> int:
        return int(self._hierarchical.loc[sample_id])

    @property
    def partition(self) -> pd.Series:
        return self._partition.copy()

    @property
    def hierarchical(self) -> pd.Series:
        return self._hierarchical.copy()

    def as_frame(self) -> pd.DataFrame:
        return pd.concat([self._partition, self._hierarchical], axis=1)


@dataclass
class ClusterResult:
    """保存两种聚类的硬分配结果。"""

    partition: pd.Series
    hierarchical: pd.Series


class CohortClusterer:
    """在分类基因上分别运行 K-means 与层次聚类（均为 3 组）。"""

    def __init__(self, cfg):
        self.cfg = cfg

    def cluster(self, features: pd.DataFrame) -> ClusterResult:
        logging.info(
            "聚类：%d 个样本 × %d 个基因，k=%d，linkage=%s",
            features.shape[0],
            features.shape[1],
            self.cfg.n_clusters,
            self.cfg.linkage_method,
        )
        partition = partition_clusters(
            features,
            n_clusters=self.cfg.n_clusters,
            n_init=self.cfg.n_init,
            random_state=self.cfg.random_state,
        )
        hierarchical = hierarchical_clusters(
            features,
            n_clusters=self.cfg.n_clusters,
            method=self.cfg.linkage_method,
            metric=self.cfg.linkage_metric,
        )
        return ClusterResult(partition=partition, hierarchical=hierarchical)
