import io
from typing import Dict

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

from pawtype.reporting.aggregation import AggregateTables


def render_count_chart(counts: Dict[str, int], title: str, xlabel: str = "") -> bytes:
    """
    Renders a group-by-count table as a bar chart.

    Args:
        counts: label -> count, already in display order.
        title: Chart title.
        xlabel: Optional x-axis label.

    Returns:
        bytes: PNG image data.
    """
    fig, ax = plt.subplots(figsize=(8, 4.5))
    try:
        if counts:
            labels = list(counts.keys())
            values = list(counts.values())
            bars = ax.bar(labels, values, color="#4C72B0")
            ax.bar_label(bars)
            ax.set_ylim(0, max(values) * 1.15)
            plt.setp(ax.get_xticklabels(), rotation=30, ha="right")
        else:
            ax.text(0.5, 0.5, "No submissions yet", ha="center", va="center", transform=ax.transAxes)
            ax.set_xticks([])
            ax.set_yticks([])

        ax.set_title(title)
        ax.set_xlabel(xlabel)
        ax.set_ylabel("Count")
        ax.grid(True, axis="y", linestyle="--", alpha=0.7)
        fig.tight_layout()

        buf = io.BytesIO()
        fig.savefig(buf, format="png", dpi=100)
        return buf.getvalue()
    finally:
        plt.close(fig)


def render_report_charts(tables: AggregateTables) -> Dict[str, bytes]:
    # One chart per aggregate table, keyed by table name.
    return {
        "category_counts": render_count_chart(tables.category_counts, "Submissions per type", "Type"),
        "expert_counts": render_count_chart(tables.expert_counts, "Preferred experts", "Expert"),
        "fee_counts": render_count_chart(tables.fee_counts, "Fee preference", "Fee"),
    }
