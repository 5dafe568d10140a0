"""Data-integrity failures raised while assigning phenotypes."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import pandas as pd


class PhenotypeError(Exception):
    """Base class for fatal conditions in a phenotype run."""


class MissingCategoryData(PhenotypeError, ValueError):
    """A sample has no usable expression for at least one gene-set category."""

    def __init__(self, samples: Dict[str, List[str]]):
        self.samples = samples
        preview = ", ".join(f"{sid} ({'/'.join(cats)})" for sid, cats in list(samples.items())[:10])
        super().__init__(f"{len(samples)} sample(s) lack expression for a gene-set category: {preview}")


class IncompleteClusterAssignment(PhenotypeError, ValueError):
    """A cohort sample has no cluster index from one of the clustering methods."""

    def __init__(self, method: str, missing: Sequence[str]):
        self.method = method
        self.missing = list(missing)
        preview = ", ".join(self.missing[:10])
        super().__init__(f"{len(self.missing)} sample(s) missing from {method} clustering: {preview}")


class NoConsensusCorrespondence(PhenotypeError, RuntimeError):
    """No unambiguous phenotype-to-cluster mapping can be read off the cross-tab."""

    def __init__(self, reason: str, crosstab: Optional[pd.DataFrame] = None):
        self.reason = reason
        self.crosstab = crosstab
        super().__init__(f"No consensus correspondence: {reason}")
