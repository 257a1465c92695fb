"""
Plotting utilities for batch concept-test results.

Generates visualizations for:
- Purchase intent, price perception and digestive risk distributions
- Expectation-confirmation scenarios and churn risk
- Segment comparison by feeding philosophy
- Top concerns and purchase triggers
"""

from typing import Any, Dict, List, Optional
import json
import os

import matplotlib.pyplot as plt

from ..analysis.metrics import BatchStatistics, RankedSignal


_LEVEL_COLORS = {
    "low": "tab:red",
    "medium": "tab:orange",
    "high": "tab:green",
}

_RISK_COLORS = {
    "low": "tab:green",
    "medium": "tab:orange",
    "high": "tab:red",
}

_SCENARIO_COLORS = {
    "surprise": "tab:blue",
    "satisfaction": "tab:green",
    "disappointment": "tab:orange",
    "rejection": "tab:red",
}


class BatchPlotter:
    """
    Creates charts and a text report from BatchStatistics.

    Every ``plot_*`` method has a matching ``*_data`` method returning
    the plotted series as plain dicts, for export or external plotting.
    """

    def __init__(self, output_dir: str = "."):
        """Initialize the batch plotter.

        Args:
            output_dir: Directory used by ``save_all`` for chart files.
                Defaults to current directory.
        """
        self.output_dir = output_dir

    # Data extraction

    def distribution_data(self, stats: BatchStatistics) -> Dict[str, Any]:
        return {
            "purchase_intent": dict(stats.purchase_intent_distribution),
            "price_perception": dict(stats.price_perception_distribution),
            "digestive_risk": dict(stats.digestive_risk_distribution),
        }

    def scenario_data(self, stats: BatchStatistics) -> Dict[str, Any]:
        return {
            "scenario": dict(stats.scenario_distribution),
            "churn_risk": dict(stats.churn_risk_distribution),
        }

    def segment_data(self, stats: BatchStatistics) -> Dict[str, Any]:
        return {
            "segments": [s.segment for s in stats.segment_analysis],
            "counts": [s.count for s in stats.segment_analysis],
            "mean_intent_score": [s.mean_intent_score for s in stats.segment_analysis],
            "mean_nps": [s.mean_nps for s in stats.segment_analysis],
        }

    def signal_data(self, stats: BatchStatistics) -> Dict[str, Any]:
        return {
            "concerns": _signal_series(stats.top_concerns),
            "triggers": _signal_series(stats.top_triggers),
        }

    # Charts

    def plot_distributions(
        self,
        stats: BatchStatistics,
        save_path: Optional[str] = None,
    ) -> Any:
        """Plot intent, price perception and digestive risk side by side.

        Args:
            stats: Batch statistics to plot.
            save_path: Optional file path to save the plot image.

        Returns:
            The matplotlib figure.
        """
        data = self.distribution_data(stats)
        fig, (ax1, ax2, ax3) = plt.subplots(1, 3, figsize=(15, 4.5))

        intent = data["purchase_intent"]
        ax1.bar(list(intent), list(intent.values()),
                color=[_LEVEL_COLORS.get(k, "steelblue") for k in intent])
        ax1.set_title("Purchase Intent")
        ax1.set_ylabel("Pairs")

        price = data["price_perception"]
        ax2.bar(list(price), list(price.values()), color="steelblue")
        ax2.set_title("Price Perception")
        ax2.tick_params(axis="x", rotation=30)

        risk = data["digestive_risk"]
        ax3.bar(list(risk), list(risk.values()),
                color=[_RISK_COLORS.get(k, "steelblue") for k in risk])
        ax3.set_title("Digestive Risk")

        fig.suptitle(f"Product {stats.product_id}: {stats.completed_samples} pairs")
        fig.tight_layout()
        _save(fig, save_path)
        return fig

    def plot_scenarios(
        self,
        stats: BatchStatistics,
        save_path: Optional[str] = None,
    ) -> Any:
        """Plot scenario outcomes next to churn risk."""
        data = self.scenario_data(stats)
        fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 4.5))

        scenarios = data["scenario"]
        ax1.bar(list(scenarios), list(scenarios.values()),
                color=[_SCENARIO_COLORS.get(k, "steelblue") for k in scenarios])
        ax1.set_title("Expectation vs. Reality")
        ax1.set_ylabel("Pairs")

        churn = data["churn_risk"]
        ax2.bar(list(churn), list(churn.values()),
                color=[_RISK_COLORS.get(k, "steelblue") for k in churn])
        ax2.set_title("Churn Risk")

        fig.tight_layout()
        _save(fig, save_path)
        return fig

    def plot_segments(
        self,
        stats: BatchStatistics,
        save_path: Optional[str] = None,
    ) -> Any:
        """Plot mean intent and mean NPS per feeding-philosophy segment."""
        data = self.segment_data(stats)
        fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 4.5))
        segments = data["segments"]

        ax1.bar(segments, data["mean_intent_score"], color="steelblue")
        ax1.set_title("Mean Intent Score by Segment")
        ax1.set_ylim(0, 100)
        ax1.tick_params(axis="x", rotation=30)

        nps = data["mean_nps"]
        ax2.bar(segments, nps, color=["tab:green" if v >= 0 else "tab:red" for v in nps])
        ax2.set_title("Mean NPS by Segment")
        ax2.set_ylim(-100, 100)
        ax2.axhline(y=0, color="gray", linestyle="-", alpha=0.5)
        ax2.tick_params(axis="x", rotation=30)

        fig.tight_layout()
        _save(fig, save_path)
        return fig

    def plot_top_signals(
        self,
        stats: BatchStatistics,
        save_path: Optional[str] = None,
    ) -> Any:
        """Plot the top concerns and top triggers as horizontal bars."""
        data = self.signal_data(stats)
        fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 4.5))

        for ax, series, title, color in (
            (ax1, data["concerns"], "Top Concerns", "tab:red"),
            (ax2, data["triggers"], "Top Purchase Triggers", "tab:green"),
        ):
            labels = series["labels"][::-1]
            ax.barh(labels, series["percentages"][::-1], color=color)
            ax.set_title(title)
            ax.set_xlabel("% of pairs")
            ax.set_xlim(0, 100)

        fig.tight_layout()
        _save(fig, save_path)
        return fig

    def save_all(self, stats: BatchStatistics) -> List[str]:
        """Render every chart into ``output_dir`` and return the file paths."""
        os.makedirs(self.output_dir, exist_ok=True)
        paths = []
        for name, plot in (
            ("distributions.png", self.plot_distributions),
            ("scenarios.png", self.plot_scenarios),
            ("segments.png", self.plot_segments),
            ("top_signals.png", self.plot_top_signals),
        ):
            path = os.path.join(self.output_dir, name)
            fig = plot(stats, save_path=path)
            plt.close(fig)
            paths.append(path)
        return paths

    def export_plot_data(
        self,
        stats: BatchStatistics,
        filepath: str,
    ) -> None:
        """Export every plotted series to JSON for external visualization."""
        data = {
            "product_id": stats.product_id,
            "distributions": self.distribution_data(stats),
            "scenarios": self.scenario_data(stats),
            "segments": self.segment_data(stats),
            "signals": self.signal_data(stats),
        }
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def create_summary_report(
        self,
        stats: BatchStatistics,
        save_path: Optional[str] = None,
    ) -> str:
        """Create a text summary report of a batch run.

        Args:
            stats: Batch statistics to report on.
            save_path: Optional file path to save the text report.

        Returns:
            The formatted report as a string.
        """
        lines = [
            "=" * 60,
            "PET FOOD CONCEPT TEST REPORT",
            "=" * 60,
            "",
            "RUN OVERVIEW",
            "-" * 40,
            f"Product: {stats.product_id}",
            f"Requested Pairs: {stats.requested_samples}",
            f"Attempted Pairs: {stats.total_samples}",
            f"Completed Pairs: {stats.completed_samples}",
            f"Skipped Records: {stats.skipped_count}",
        ]
        if stats.cancelled:
            lines.append("Status: CANCELLED before all pairs were attempted")

        lines.extend([
            "",
            "HEADLINE METRICS",
            "-" * 40,
            f"Mean Intent Score: {stats.mean_intent_score:.2f}",
            f"Mean Trust Score: {stats.mean_trust_score:.2f}",
            f"Mean Repurchase Rate: {stats.mean_repurchase_rate:.2f}%",
            f"Mean NPS: {stats.mean_nps:.2f}",
            "",
        ])

        for title, distribution in (
            ("Purchase Intent", stats.purchase_intent_distribution),
            ("Price Perception", stats.price_perception_distribution),
            ("Digestive Risk", stats.digestive_risk_distribution),
            ("Final Decision", stats.final_decision_distribution),
            ("Scenario", stats.scenario_distribution),
            ("Churn Risk", stats.churn_risk_distribution),
        ):
            lines.append(f"{title}:")
            for key, count in distribution.items():
                lines.append(f"  - {key}: {count}")
            lines.append("")

        lines.extend(["TOP CONCERNS", "-" * 40])
        lines.extend(_signal_lines(stats.top_concerns))
        lines.extend(["", "TOP PURCHASE TRIGGERS", "-" * 40])
        lines.extend(_signal_lines(stats.top_triggers))

        lines.extend(["", "SEGMENT ANALYSIS", "-" * 40])
        if not stats.segment_analysis:
            lines.append("  (no completed pairs)")
        for segment in stats.segment_analysis:
            lines.append(
                f"  - {segment.segment}: n={segment.count}, "
                f"intent={segment.mean_intent_score:.2f}, nps={segment.mean_nps:.2f}"
            )
            lines.append(f"      {segment.key_insight}")

        if stats.skipped_records:
            lines.extend(["", "SKIPPED RECORDS", "-" * 40])
            for record in stats.skipped_records[:10]:
                lines.append(f"  - {record.pair_id}: {record.reason}")
            if len(stats.skipped_records) > 10:
                lines.append(f"  ... and {len(stats.skipped_records) - 10} more")

        lines.extend([
            "",
            "=" * 60,
            "END OF REPORT",
            "=" * 60,
        ])

        report = "\n".join(lines)

        if save_path:
            with open(save_path, "w", encoding="utf-8") as f:
                f.write(report)

        return report

    def __repr__(self) -> str:
        return f"BatchPlotter(output_dir={self.output_dir!r})"


def _signal_series(signals: List[RankedSignal]) -> Dict[str, List[Any]]:
    return {
        "labels": [s.text for s in signals],
        "counts": [s.count for s in signals],
        "percentages": [s.percentage for s in signals],
    }


def _signal_lines(signals: List[RankedSignal]) -> List[str]:
    if not signals:
        return ["  (none)"]
    return [f"  - {s.text}: {s.count} ({s.percentage:.1f}%)" for s in signals]


def _save(fig: Any, save_path: Optional[str]) -> None:
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
