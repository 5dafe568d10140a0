"""通用数据工具函数，用于读写表达矩阵、基因集与结果文件。"""

from __future__ import annotations

import json
import logging
import random
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from immunophenotype.utils.gene_set_activity import build_membership


def set_seed(seed: int) -> None:
    """统一设置 Python/NumPy 的随机种子，保证实验可复现。"""

    random.seed(seed)
    np.random.seed(seed)


def ensure_dir(path: Path) -> Path:
    """确保目录存在，若不存在则递归创建。"""

    path.mkdir(parents=True, exist_ok=True)
    return path


def save_json(payload: dict, path: Path) -> None:
    """将结果对象保存为 JSON 文件。"""

    ensure_dir(path.parent)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def save_dataframe(df: pd.DataFrame, path: Path) -> None:
    ensure_dir(path.parent)
    df.to_csv(path)


def load_expression_matrix(path: Path, sample_col: Optional[str] = None) -> pd.DataFrame:
    """
    载入样本 × 基因的表达矩阵（已标准化，如 cBioPortal 的 z-score）。
    基因名统一为大写，重复基因列取均值。
    """

    df = pd.read_csv(path)
    sample_col = sample_col or df.columns[0]
    if sample_col not in df.columns:
        raise ValueError(f"表达矩阵缺少样本列: {sample_col}")
    sample_ids = df[sample_col].astype(str).str.strip()
    if sample_ids.duplicated().any():
        dup = sample_ids[sample_ids.duplicated()].unique().tolist()
        raise ValueError(f"表达矩阵中样本 ID 重复: {', '.join(dup[:10])}")
    expr = df.drop(columns=[sample_col]).apply(pd.to_numeric, errors="coerce")
    expr.index = pd.Index(sample_ids, name="sample_id")
    expr.columns = [str(c).strip().upper() for c in expr.columns]
    if expr.columns.duplicated().any():
        expr = expr.T.groupby(level=0).mean().T
    return expr


def load_gene_membership(path: Path) -> pd.Series:
    """读取分类基因列表（Gene, Type 两列），返回 gene → category。"""

    table = pd.read_csv(path)
    return build_membership(table)


def load_clinical_table(path: Optional[Path], sample_col: Optional[str] = None) -> Optional[pd.DataFrame]:
    """读取可选的临床信息表，仅透传给下游，不参与表型判定。"""

    if path is None:
        return None
    if not path.exists():
        logging.warning("临床信息文件不存在，跳过：%s", path)
        return None
    df = pd.read_csv(path)
    sample_col = sample_col or df.columns[0]
    df[sample_col] = df[sample_col].astype(str).str.strip()
    return df.drop_duplicates(sample_col).set_index(sample_col).rename_axis("sample_id")


def restrict_to_genes(expr: pd.DataFrame, membership: pd.Series) -> pd.DataFrame:
    """截取分类基因子矩阵用于聚类；含缺失值的基因整列剔除。"""

    genes = [g for g in membership.index if g in expr.columns]
    sub = expr[genes].replace([np.inf, -np.inf], np.nan)
    incomplete = sub.columns[sub.isna().any(axis=0)].tolist()
    if incomplete:
        logging.warning("%d 个分类基因含缺失值，聚类时剔除：%s", len(incomplete), ", ".join(incomplete[:10]))
        sub = sub.drop(columns=incomplete)
    if sub.shape[1] == 0:
        raise ValueError("没有可用于聚类的完整分类基因。")
    return sub.astype(float)
