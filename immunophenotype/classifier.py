"""基于三个通路活性分数的规则表型判定（“scientific” 方法）。"""

from __future__ import annotations

import math
from typing import Dict

import numpy as np
import pandas as pd

from immunophenotype.labels import PRIORITY, SCORE_COLUMNS, Phenotype, as_phenotype_series

# (angiogenesis, immune, stroma) 的位置，用于 argmax 比较。
ANGIOGENESIS, IMMUNE, STROMA = 0, 1, 2


def inflamed_score(angiogenesis: float, immune: float, stroma: float) -> float:
    scores = (angiogenesis, immune, stroma)
    # 多个最大值时取第一个位置
    return (
        (int(np.argmax(scores)) == IMMUNE) * 1.0
        + (immune > 0) * 1.0
        + (angiogenesis < 0) * 0.3
    )


def excluded_score(angiogenesis: float, immune: float, stroma: float) -> float:
    top = max(angiogenesis, immune, stroma)
    return (
        (top == immune) * 0.6
        + (top == stroma) * 0.7
        + (stroma > 0) * 0.7
        + (angiogenesis < 0) * 0.3
    )


def deserted_score(angiogenesis: float, immune: float, stroma: float) -> float:
    top = max(angiogenesis, immune, stroma)
    return (
        (immune < 0 and stroma < 0) * 1.7
        + (angiogenesis > 0) * 0.3
        + (top == angiogenesis) * 0.3
    )


def phenotype_scores(angiogenesis: float, immune: float, stroma: float) -> Dict[Phenotype, float]:
    """三个表型的加权指示分数（未归一化）。"""

    for value in (angiogenesis, immune, stroma):
        if not math.isfinite(value):
            raise ValueError(f"活性分数必须是有限实数: {(angiogenesis, immune, stroma)}")
    return {
        Phenotype.INFLAMED: inflamed_score(angiogenesis, immune, stroma),
        Phenotype.EXCLUDED: excluded_score(angiogenesis, immune, stroma),
        Phenotype.DESERTED: deserted_score(angiogenesis, immune, stroma),
    }


def pick_phenotype(scores: Dict[Phenotype, float]) -> Phenotype:
    """
    取分数最高的表型。
    分数完全相等时按 Inflamed、Excluded、Deserted 的顺序取第一个。
    """

    best = PRIORITY[0]
    for label in PRIORITY[1:]:
        if scores[label] > scores[best]:
            best = label
    return best


def classify(angiogenesis: float, immune: float, stroma: float) -> Phenotype:
    return pick_phenotype(phenotype_scores(angiogenesis, immune, stroma))


def classify_samples(activity: pd.DataFrame) -> pd.Series:
    """对活性分数矩阵逐样本判定表型，返回有序分类 Series。"""

    missing = [c for c in SCORE_COLUMNS if c not in activity.columns]
    if missing:
        raise ValueError(f"活性分数矩阵缺少列: {missing}")
    labels = [
        classify(float(row[0]), float(row[1]), float(row[2]))
        for row in activity[SCORE_COLUMNS].itertuples(index=False, name=None)
    ]
    return as_phenotype_series(labels, index=activity.index, name="heuristic")


def score_table(activity: pd.DataFrame) -> pd.DataFrame:
    """逐样本输出三个表型分数，便于审计。"""

    rows = []
    for row in activity[SCORE_COLUMNS].itertuples(index=False, name=None):
        scores = phenotype_scores(float(row[0]), float(row[1]), float(row[2]))
        rows.append({f"{label.short}_score": value for label, value in scores.items()})
    return pd.DataFrame(rows, index=activity.index)
