"""规则表型与 K-means 簇的交叉对照、一一对应关系推断及一致性过滤。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import permutations
from typing import Dict, List, Optional, Tuple

import pandas as pd

from immunophenotype.clustering import ClusterLabelAdapter
from immunophenotype.errors import NoConsensusCorrespondence
from immunophenotype.labels import PRIORITY, Phenotype, as_phenotype_series


def cross_tabulate(heuristic: pd.Series, clusters: pd.Series) -> pd.DataFrame:
    """表型 × 簇编号的计数表，行固定为 Inflamed/Excluded/Deserted。"""

    labels = heuristic.astype(str)
    labels.index = labels.index.map(str)
    clusters = clusters.copy()
    clusters.index = clusters.index.map(str)
    shared = labels.index.intersection(clusters.index)
    table = pd.crosstab(labels.loc[shared], clusters.loc[shared].astype(int))
    table = table.reindex(index=[p.value for p in PRIORITY], fill_value=0)
    table.index.name = "phenotype"
    table.columns.name = "cluster"
    return table.astype(int)


@dataclass(frozen=True)
class Correspondence:
    """表型到簇编号的固定一一对应，由交叉表一次性推断得到。"""

    inflamed: int
    excluded: int
    deserted: int
    agreement: int = 0

    def cluster_for(self, label: Phenotype) -> int:
        return self.as_dict()[Phenotype(label)]

    def as_dict(self) -> Dict[Phenotype, int]:
        return {
            Phenotype.INFLAMED: self.inflamed,
            Phenotype.EXCLUDED: self.excluded,
            Phenotype.DESERTED: self.deserted,
        }


def derive_correspondence(crosstab: pd.DataFrame) -> Correspondence:
    """
    在所有“表型 → 互不相同的簇”映射中选出一致样本数最多的一个。
    簇不足 3 个、交叉表全零或最优映射不唯一时直接报错，不做任何回退。
    """

    table = crosstab.reindex(index=[p.value for p in PRIORITY], fill_value=0)
    clusters = list(table.columns)
    if len(clusters) < len(PRIORITY):
        raise NoConsensusCorrespondence(
            f"need at least {len(PRIORITY)} clusters, cross-tab has {len(clusters)}", crosstab
        )
    if int(table.to_numpy().sum()) == 0:
        raise NoConsensusCorrespondence("cross-tab is empty", crosstab)

    ranked: List[Tuple[int, Tuple]] = []
    for combo in permutations(clusters, len(PRIORITY)):
        agreement = sum(int(table.loc[label.value, cluster]) for label, cluster in zip(PRIORITY, combo))
        ranked.append((agreement, combo))
    best = max(score for score, _ in ranked)
    winners = [combo for score, combo in ranked if score == best]
    if best == 0:
        raise NoConsensusCorrespondence("no phenotype agrees with any cluster", crosstab)
    if len(winners) > 1:
        raise NoConsensusCorrespondence(
            f"{len(winners)} mappings tie at {best} agreeing samples", crosstab
        )
    inflamed, excluded, deserted = (int(c) for c in winners[0])
    return Correspondence(inflamed=inflamed, excluded=excluded, deserted=deserted, agreement=best)


@dataclass(frozen=True)
class ConsensusRecord:
    """单个样本的三种方法结果；final 为空表示该样本被剔除。"""

    sample_id: str
    heuristic: Phenotype
    partition: int
    hierarchical: int
    final: Optional[Phenotype] = None

    @property
    def retained(self) -> bool:
        return self.final is not None


@dataclass(frozen=True)
class ConsensusResult:
    records: Tuple[ConsensusRecord, ...]
    correspondence: Correspondence

    @property
    def retained(self) -> List[ConsensusRecord]:
        return [rec for rec in self.records if rec.retained]

    @property
    def n_dropped(self) -> int:
        return len(self.records) - len(self.retained)

    @property
    def phenotypes(self) -> pd.Series:
        """过滤后的队列：sample → 最终表型，供下游分析使用。"""

        kept = self.retained
        index = pd.Index([rec.sample_id for rec in kept], name="sample_id")
        return as_phenotype_series([rec.final for rec in kept], index=index, name="phenotype")

    def to_frame(self) -> pd.DataFrame:
        index = pd.Index([rec.sample_id for rec in self.records], name="sample_id")
        frame = pd.DataFrame(
            {
                "partition": [rec.partition for rec in self.records],
                "hierarchical": [rec.hierarchical for rec in self.records],
            },
            index=index,
        )
        frame.insert(0, "heuristic", as_phenotype_series([rec.heuristic for rec in self.records], index=index))
        frame["final"] = as_phenotype_series([rec.final for rec in self.records], index=index)
        return frame


def reconcile(
    heuristic: pd.Series,
    adapter: ClusterLabelAdapter,
    correspondence: Correspondence,
) -> ConsensusResult:
    """仅保留 K-means 簇与规则表型在对应关系下一致的样本。"""

    labels = heuristic.copy()
    labels.index = labels.index.map(str)
    unlabeled = [sid for sid in adapter.cohort if sid not in labels.index]
    if unlabeled:
        raise ValueError(f"{len(unlabeled)} 个样本缺少规则表型: {', '.join(unlabeled[:10])}")

    records = []
    for sid in adapter.cohort:
        label = Phenotype(str(labels.loc[sid]))
        cluster = adapter.partition_index(sid)
        agrees = cluster == correspondence.cluster_for(label)
        records.append(
            ConsensusRecord(
                sample_id=sid,
                heuristic=label,
                partition=cluster,
                hierarchical=adapter.hierarchical_index(sid),
                final=label if agrees else None,
            )
        )
    result = ConsensusResult(records=tuple(records), correspondence=correspondence)
    logging.info(
        "一致性过滤：保留 %d / %d 个样本，剔除 %d 个",
        len(result.retained),
        len(records),
        result.n_dropped,
    )
    return result
