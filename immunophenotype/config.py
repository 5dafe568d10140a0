"""
集中维护表型判定流程所需的所有配置数据类。
通过在一个文件内定义默认路径和参数，可以方便地在 main.py 中载入。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class DataPaths:
    """流程依赖的所有数据文件路径。"""

    data_dir: Path = Path("data")
    expression: Path = data_dir / "expression_zscores.csv"
    classification_genes: Path = data_dir / "classificationGenes.csv"
    clinical: Optional[Path] = None
    output_dir: Path = Path("output")


@dataclass
class ClusteringConfig:
    """K-means 与层次聚类配置，两者都切成 3 组。"""

    n_clusters: int = 3
    n_init: int = 50
    random_state: int = 42
    linkage_method: str = "complete"
    linkage_metric: str = "euclidean"


@dataclass
class ReportConfig:
    """诊断图输出开关。"""

    make_figures: bool = True
    figure_dpi: int = 300


@dataclass
class PipelineConfig:
    """完整流程的聚合配置。"""

    data: DataPaths = field(default_factory=DataPaths)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    random_seed: int = 42
