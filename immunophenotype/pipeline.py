"""主流程封装，负责串联活性评分、规则判定、聚类与一致性过滤。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import pandas as pd

from immunophenotype.classifier import classify_samples, score_table
from immunophenotype.clustering import ClusterLabelAdapter, CohortClusterer
from immunophenotype.config import PipelineConfig
from immunophenotype.consensus import ConsensusResult, cross_tabulate, derive_correspondence, reconcile
from immunophenotype.data_utils import (
    ensure_dir,
    load_clinical_table,
    load_expression_matrix,
    load_gene_membership,
    restrict_to_genes,
    save_dataframe,
    save_json,
    set_seed,
)
from immunophenotype.utils.gene_set_activity import method_agreement, score_gene_sets
from immunophenotype.utils.plotting import (
    plot_activity_by_phenotype,
    plot_crosstab_heatmap,
    plot_retention_counts,
)


@dataclass
class PhenotypeRunResult:
    """一次运行的全部中间结果，便于审计与下游调用。"""

    activity: pd.DataFrame
    heuristic: pd.Series
    clusters: pd.DataFrame
    crosstab_partition: pd.DataFrame
    crosstab_hierarchical: pd.DataFrame
    consensus: ConsensusResult
    summary: Dict[str, object]


class PhenotypePipeline:
    """封装完整表型判定流程，提供 `run` 方法外部调用。"""

    def __init__(self, cfg: PipelineConfig):
        self.cfg = cfg
        self.paths = cfg.data
        set_seed(cfg.random_seed)

    def _load_inputs(self):
        expr = load_expression_matrix(self.paths.expression)
        membership = load_gene_membership(self.paths.classification_genes)
        logging.info(
            "载入表达矩阵 %d 个样本 × %d 个基因；分类基因 %d 个",
            expr.shape[0],
            expr.shape[1],
            len(membership),
        )
        return expr, membership

    def classify_cohort(
        self,
        expr: pd.DataFrame,
        membership: pd.Series,
        clusters: Optional[pd.DataFrame] = None,
    ) -> PhenotypeRunResult:
        """
        对内存中的表达矩阵执行完整判定。
        clusters 可传入固定的 partition/hierarchical 两列，跳过内部聚类。
        """

        activity = score_gene_sets(expr, membership)
        activity.index = activity.index.map(str).rename("sample_id")
        heuristic = classify_samples(activity)
        logging.info("规则表型分布：%s", heuristic.value_counts().sort_index().to_dict())

        if clusters is None:
            features = restrict_to_genes(expr, membership)
            res = CohortClusterer(self.cfg.clustering).cluster(features)
            clusters = pd.concat([res.partition, res.hierarchical], axis=1)

        adapter = ClusterLabelAdapter(activity.index, clusters["partition"], clusters["hierarchical"])
        crosstab_partition = cross_tabulate(heuristic, adapter.partition)
        crosstab_hierarchical = cross_tabulate(heuristic, adapter.hierarchical)
        logging.info("规则表型 × K-means 交叉表：\n%s", crosstab_partition.to_string())

        correspondence = derive_correspondence(crosstab_partition)
        consensus = reconcile(heuristic, adapter, correspondence)

        summary = {
            "n_samples": len(consensus.records),
            "n_retained": len(consensus.retained),
            "n_dropped": consensus.n_dropped,
            "correspondence": {label.value: cluster for label, cluster in correspondence.as_dict().items()},
            "agreement": correspondence.agreement,
            "final_counts": {
                str(k): int(v) for k, v in consensus.phenotypes.value_counts().sort_index().items()
            },
            "ari_partition_hierarchical": method_agreement(adapter.partition, adapter.hierarchical),
            "ari_heuristic_partition": method_agreement(heuristic, adapter.partition),
        }
        return PhenotypeRunResult(
            activity=activity,
            heuristic=heuristic,
            clusters=adapter.as_frame(),
            crosstab_partition=crosstab_partition,
            crosstab_hierarchical=crosstab_hierarchical,
            consensus=consensus,
            summary=summary,
        )

    def _save_outputs(self, result: PhenotypeRunResult, clinical: Optional[pd.DataFrame]) -> None:
        out = ensure_dir(self.paths.output_dir)
        audit = pd.concat(
            [result.activity, score_table(result.activity), result.heuristic], axis=1
        )
        save_dataframe(audit, out / "activity_scores.csv")
        save_dataframe(result.consensus.to_frame(), out / "consensus_records.csv")
        phenotypes = result.consensus.phenotypes.to_frame()
        if clinical is not None:
            phenotypes = phenotypes.join(clinical, how="left")
        save_dataframe(phenotypes, out / "phenotypes.csv")
        save_dataframe(result.crosstab_partition, out / "crosstab_partition.csv")
        save_dataframe(result.crosstab_hierarchical, out / "crosstab_hierarchical.csv")
        save_json(result.summary, out / "summary.json")

        if not self.cfg.report.make_figures:
            return
        figures = out / "figures"
        dpi = self.cfg.report.figure_dpi
        plot_crosstab_heatmap(
            result.crosstab_partition, "Heuristic vs K-means", figures / "crosstab_partition.png", dpi
        )
        plot_crosstab_heatmap(
            result.crosstab_hierarchical, "Heuristic vs Hierarchical", figures / "crosstab_hierarchical.png", dpi
        )
        plot_activity_by_phenotype(
            result.activity, result.consensus.phenotypes, figures / "activity_by_phenotype.png", dpi
        )
        plot_retention_counts(result.consensus.to_frame(), figures / "retention_counts.png", dpi)

    def run(self) -> PhenotypeRunResult:
        """执行一次完整判定，并将结果写入 output_dir。"""

        logging.info("=" * 60)
        logging.info("正在运行：免疫表型判定 (%s)", self.paths.expression)
        logging.info("=" * 60)
        expr, membership = self._load_inputs()
        clinical = load_clinical_table(self.paths.clinical)
        result = self.classify_cohort(expr, membership)
        self._save_outputs(result, clinical)
        logging.info(
            "完成：%d / %d 个样本进入最终队列，结果已保存：%s",
            result.summary["n_retained"],
            result.summary["n_samples"],
            self.paths.output_dir.resolve(),
        )
        return result
