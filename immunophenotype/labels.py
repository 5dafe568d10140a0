"""Gene-set categories and phenotype labels shared across the pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, List

import pandas as pd


class GeneSetCategory(str, Enum):
    ANGIOGENESIS = "angiogenesis"
    IMMUNE = "immune"
    STROMA = "stroma"

    @classmethod
    def parse(cls, raw: str) -> "GeneSetCategory":
        key = str(raw).strip().lower()
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Unknown gene-set category: {raw!r}")


# Column order of the activity-score frame; also the argmax order of the classifier.
SCORE_COLUMNS: List[str] = [c.value for c in GeneSetCategory]


class Phenotype(str, Enum):
    INFLAMED = "Inflamed"
    EXCLUDED = "Excluded"
    DESERTED = "Deserted"

    @property
    def short(self) -> str:
        return self.value[:3]


# Tie-break order among equal heuristic scores.
PRIORITY: List[Phenotype] = [Phenotype.INFLAMED, Phenotype.EXCLUDED, Phenotype.DESERTED]

# Display order only.
DISPLAY_ORDER: List[str] = [Phenotype.DESERTED.value, Phenotype.EXCLUDED.value, Phenotype.INFLAMED.value]


def as_phenotype_series(values: Iterable, index, name: str = "phenotype") -> pd.Series:
    """Wrap labels into an ordered categorical series (Deserted < Excluded < Inflamed)."""
    raw = [v.value if isinstance(v, Phenotype) else v for v in values]
    dtype = pd.CategoricalDtype(DISPLAY_ORDER, ordered=True)
    return pd.Series(pd.Categorical(raw, dtype=dtype), index=index, name=name)
