"""Tests for batch charts and the summary report."""

import json
import os

import matplotlib
import matplotlib.pyplot as plt
import pytest

matplotlib.use("Agg")

from petfood_sim.cli import create_sample_pairs, create_sample_product
from petfood_sim.simulation.batch import BatchConfig, BatchRunner
from petfood_sim.visualization.plots import BatchPlotter


@pytest.fixture(scope="module")
def stats():
    pairs = [p.to_dict() for p in create_sample_pairs(80, seed=5)]
    pairs.append({"id": "broken"})
    runner = BatchRunner(batch_config=BatchConfig(max_workers=2, chunk_size=20))
    return runner.run(pairs, create_sample_product())


class TestBatchPlotter:
    """Tests for BatchPlotter class."""

    @pytest.fixture
    def plotter(self, tmp_path):
        return BatchPlotter(str(tmp_path))

    def test_distribution_data(self, plotter, stats):
        data = plotter.distribution_data(stats)
        assert set(data) == {"purchase_intent", "price_perception", "digestive_risk"}
        assert sum(data["purchase_intent"].values()) == stats.completed_samples

    def test_segment_data_aligned(self, plotter, stats):
        data = plotter.segment_data(stats)
        assert len(data["segments"]) == len(data["mean_nps"]) == len(data["counts"])

    def test_signal_data(self, plotter, stats):
        data = plotter.signal_data(stats)
        assert data["triggers"]["labels"][0] == "trial pack to test palatability"

    def test_plot_saves_png(self, plotter, stats, tmp_path):
        path = tmp_path / "dist.png"
        fig = plotter.plot_distributions(stats, save_path=str(path))
        plt.close(fig)
        assert path.exists()

    def test_save_all(self, plotter, stats):
        paths = plotter.save_all(stats)
        assert len(paths) == 4
        assert all(os.path.exists(p) for p in paths)

    def test_export_plot_data(self, plotter, stats, tmp_path):
        path = tmp_path / "plot_data.json"
        plotter.export_plot_data(stats, str(path))
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["product_id"] == stats.product_id
        assert "scenario" in data["scenarios"]

    def test_summary_report(self, plotter, stats, tmp_path):
        path = tmp_path / "report.txt"
        report = plotter.create_summary_report(stats, save_path=str(path))

        assert "PET FOOD CONCEPT TEST REPORT" in report
        assert "Skipped Records: 1" in report
        assert "broken" in report
        assert "SEGMENT ANALYSIS" in report
        assert path.read_text(encoding="utf-8") == report


class TestBackend:
    """Importing the plotting module leaves the backend alone."""

    def test_import_keeps_caller_backend(self):
        import importlib

        import petfood_sim.visualization.plots as plots

        matplotlib.use("svg")
        try:
            importlib.reload(plots)
            assert matplotlib.get_backend().lower() == "svg"
        finally:
            matplotlib.use("Agg")
