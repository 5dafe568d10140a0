from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from immunophenotype.labels import DISPLAY_ORDER, SCORE_COLUMNS


def plot_crosstab_heatmap(table: pd.DataFrame, title: str, path: Path, dpi: int = 300) -> None:
    if table.empty:
        return
    sns.set_theme(style="whitegrid")
    fig, ax = plt.subplots(figsize=(max(4, table.shape[1] * 1.2), 3.5))
    sns.heatmap(table, annot=True, fmt="d", cmap="Blues", ax=ax, cbar_kws={"label": "Samples"})
    ax.set_xlabel("Cluster")
    ax.set_ylabel("Heuristic phenotype")
    ax.set_title(title)
    fig.tight_layout()
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi)
    plt.close(fig)


def plot_activity_by_phenotype(activity: pd.DataFrame, labels: pd.Series, path: Path, dpi: int = 300) -> None:
    if activity.empty or labels.empty:
        return
    shared = activity.index.intersection(labels.index)
    long = (
        activity.loc[shared, SCORE_COLUMNS]
        .assign(phenotype=labels.loc[shared].astype(str))
        .melt(id_vars="phenotype", var_name="gene_set", value_name="activity")
    )
    sns.set_theme(style="whitegrid")
    fig, ax = plt.subplots(figsize=(7, 4))
    sns.boxplot(
        data=long,
        x="gene_set",
        y="activity",
        hue="phenotype",
        hue_order=[p for p in DISPLAY_ORDER if p in set(long["phenotype"])],
        ax=ax,
    )
    ax.axhline(0, linestyle="--", color="gray", alpha=0.6)
    ax.set_xlabel("Gene set")
    ax.set_ylabel("Mean expression")
    ax.set_title("Gene-set Activity per Phenotype")
    fig.tight_layout()
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi)
    plt.close(fig)


def plot_retention_counts(records: pd.DataFrame, path: Path, dpi: int = 300) -> None:
    if records.empty:
        return
    counts = (
        records.assign(
            heuristic=records["heuristic"].astype(str),
            status=records["final"].notna().map({True: "Retained", False: "Dropped"}),
        )
        .groupby(["heuristic", "status"])
        .size()
        .reset_index(name="Count")
    )
    sns.set_theme(style="whitegrid")
    fig, ax = plt.subplots(figsize=(6, 4))
    sns.barplot(
        data=counts,
        x="heuristic",
        y="Count",
        hue="status",
        order=[p for p in DISPLAY_ORDER if p in set(counts["heuristic"])],
        ax=ax,
    )
    ax.set_xlabel("Heuristic phenotype")
    ax.set_title("Consensus Retention per Phenotype")
    fig.tight_layout()
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi)
    plt.close(fig)
