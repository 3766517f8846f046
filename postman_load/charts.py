from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from .aggregator import MetricsAggregator
from .report import is_success_code

LOGGER = logging.getLogger("postman_load.charts")

sns.set_style("whitegrid")
plt.rcParams["figure.dpi"] = 100
plt.rcParams["savefig.dpi"] = 300
plt.rcParams["font.size"] = 10
plt.rcParams["axes.labelsize"] = 11
plt.rcParams["axes.titlesize"] = 13
plt.rcParams["legend.fontsize"] = 9

SUCCESS_COLOR = "#2E86AB"
ERROR_COLORS = ["#C73E1D", "#F18F01", "#A23B72", "#6A994E", "#808080"]

RECORDS_FILENAME = "records.csv"
SUMMARY_FILENAME = "summary.csv"
LATENCY_CHART_FILENAME = "latency_boxplot.png"
STATUS_CHART_FILENAME = "status_codes.png"


def write_artefacts(aggregator: MetricsAggregator, output_dir: Path) -> list[Path]:
    """Write record/summary CSV files and charts; returns the written paths."""
    output_dir.mkdir(parents=True, exist_ok=True)
    df = aggregator.build_dataframe()
    written = []

    records_path = output_dir / RECORDS_FILENAME
    df.to_csv(records_path, index=False)
    written.append(records_path)

    summary_path = output_dir / SUMMARY_FILENAME
    summary_frame(aggregator).to_csv(summary_path, index=False)
    written.append(summary_path)
    LOGGER.info("Saved %d records to %s", len(df), records_path)

    if df.empty:
        LOGGER.warning("No records available, skipping charts")
        return written

    latency_path = output_dir / LATENCY_CHART_FILENAME
    _render_latency_boxplot(df, latency_path)
    written.append(latency_path)

    status_path = output_dir / STATUS_CHART_FILENAME
    _render_status_chart(df, status_path)
    written.append(status_path)
    return written


def summary_frame(aggregator: MetricsAggregator) -> pd.DataFrame:
    rows = [
        {
            "request_name": summary.request_name,
            "count": summary.count,
            "average_ms": summary.average,
            "min_ms": summary.minimum,
            "max_ms": summary.maximum,
            "errors": sum(
                count for code, count in summary.code_counts.items() if not is_success_code(code)
            ),
        }
        for summary in aggregator.summarize()
    ]
    return pd.DataFrame(
        rows, columns=["request_name", "count", "average_ms", "min_ms", "max_ms", "errors"]
    )


def _render_latency_boxplot(df: pd.DataFrame, chart_path: Path) -> None:
    order = list(dict.fromkeys(df["request_name"]))
    fig, ax = plt.subplots(figsize=(max(8, len(order) * 1.5), 6))
    sns.boxplot(
        data=df,
        x="request_name",
        y="latency_ms",
        order=order,
        color=SUCCESS_COLOR,
        ax=ax,
        linewidth=1.5,
        width=0.6,
    )
    ax.set_xlabel("Request", fontweight="semibold", labelpad=12)
    ax.set_ylabel("Latency (ms)", fontweight="semibold", labelpad=12)
    ax.set_ylim(bottom=0)
    ax.set_title("Response Latency by Request", fontweight="bold", pad=15)
    ax.grid(True, alpha=0.3, linestyle="--", linewidth=0.5, axis="y")
    ax.set_axisbelow(True)
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)

    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)


def _render_status_chart(df: pd.DataFrame, chart_path: Path) -> None:
    order = list(dict.fromkeys(df["request_name"]))
    counts = (
        df.groupby(["request_name", "status_code"]).size().unstack(fill_value=0).reindex(order)
    )
    codes = sorted(counts.columns)
    error_colors = iter(ERROR_COLORS * (len(codes) // len(ERROR_COLORS) + 1))

    fig, ax = plt.subplots(figsize=(max(8, len(order) * 1.5), 6))
    bottom = np.zeros(len(order))
    for code in codes:
        color = SUCCESS_COLOR if is_success_code(code) else next(error_colors)
        values = counts[code].to_numpy()
        ax.bar(
            order,
            values,
            bottom=bottom,
            label=str(code),
            color=color,
            alpha=0.8,
            edgecolor="white",
            linewidth=1.5,
        )
        bottom += values

    ax.set_ylabel("Responses", fontweight="semibold")
    ax.set_xlabel("Request", fontweight="semibold")
    ax.set_title("Status Codes by Request", fontweight="bold", pad=15)
    ax.legend(
        title="Status",
        loc="center left",
        bbox_to_anchor=(1.0, 0.5),
        frameon=True,
        fancybox=True,
        shadow=True,
    )
    ax.grid(True, alpha=0.3, axis="y", linestyle="--")

    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)


__all__ = ["summary_frame", "write_artefacts"]
