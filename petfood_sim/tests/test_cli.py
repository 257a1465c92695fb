"""Tests for the command-line interface."""

import json

import pytest

from petfood_sim import __version__
from petfood_sim.agents.profiles import Product
from petfood_sim.cli import create_sample_pairs, create_sample_product, main


class TestSampleData:
    """Tests for sample generation."""

    def test_seeded_pairs_repeat(self):
        assert create_sample_pairs(20, seed=1) == create_sample_pairs(20, seed=1)

    def test_pair_ids_unique(self):
        pairs = create_sample_pairs(50, seed=2)
        assert len({p.id for p in pairs}) == 50

    def test_sample_product_valid(self):
        product = create_sample_product()
        assert Product.from_dict(product.to_dict()).to_dict() == product.to_dict()


class TestMain:
    """Tests for the main entry point."""

    def test_version(self, capsys):
        assert main(["-v"]) == 0
        assert __version__ in capsys.readouterr().out

    def test_simulate(self, capsys):
        assert main(["--log-level", "WARNING", "simulate", "--seed", "3"]) == 0
        out = capsys.readouterr().out
        assert "OWNER" in out
        assert "FEEDING SCRIPT" in out

    def test_simulate_json(self, capsys):
        assert main(["--log-level", "WARNING", "simulate", "--seed", "3", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["owner"]["product_id"] == data["product"]["id"]
        assert len(data["feeding_script"]["scenes"]) == 3

    def test_simulate_pair_file(self, tmp_path, capsys):
        pair = create_sample_pairs(1, seed=9)[0]
        path = tmp_path / "pair.json"
        path.write_text(json.dumps(pair.to_dict()), encoding="utf-8")

        assert main(["--log-level", "WARNING", "simulate", "--pair", str(path), "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["interaction"]["persona_id"] == pair.id

    def test_batch_writes_outputs(self, tmp_path, capsys):
        out_dir = tmp_path / "out"
        code = main([
            "--log-level", "WARNING", "batch", "-n", "60", "--seed", "4",
            "--workers", "2", "--chunk-size", "20", "-o", str(out_dir), "--no-plots",
        ])

        assert code == 0
        stats = json.loads((out_dir / "batch_statistics.json").read_text(encoding="utf-8"))
        assert stats["total_samples"] == 60
        assert (out_dir / "pair_results.csv").exists()
        assert (out_dir / "summary_report.txt").exists()
        assert "PET FOOD CONCEPT TEST REPORT" in capsys.readouterr().out

    def test_bad_config_fails(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"decision": {"buy_min_score": 10}}), encoding="utf-8")
        assert main(["--log-level", "CRITICAL", "batch", "-n", "5", "--config", str(path)]) == 2

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "petfood-sim" in capsys.readouterr().out

    def test_invalid_product_json_fails_cleanly(self, tmp_path):
        path = tmp_path / "product.json"
        path.write_text("{not json", encoding="utf-8")
        assert main(["--log-level", "CRITICAL", "simulate", "--product", str(path)]) == 2

    def test_invalid_pair_json_fails_cleanly(self, tmp_path):
        path = tmp_path / "pair.json"
        path.write_text("[1, 2", encoding="utf-8")
        assert main(["--log-level", "CRITICAL", "simulate", "--pair", str(path)]) == 2

    def test_mistyped_config_table_fails_cleanly(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"price_scores": {"cheap": "high"}}), encoding="utf-8")
        assert main(["--log-level", "CRITICAL", "simulate", "--config", str(path)]) == 2

    def test_unknown_log_level_rejected(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--log-level", "LOUD", "simulate"])
        assert excinfo.value.code == 2
        assert "invalid choice" in capsys.readouterr().err

    def test_log_level_is_case_insensitive(self, capsys):
        assert main(["--log-level", "warning", "simulate", "--seed", "3", "--json"]) == 0
