"""Tests for batch runs and batch statistics."""

import csv

import pytest

from petfood_sim.agents.profiles import FeedingPhilosophy, PersonaPair
from petfood_sim.analysis.metrics import StatsAccumulator, export_results_csv, rank_signals
from petfood_sim.cli import create_sample_pairs, create_sample_product
from petfood_sim.errors import ConfigurationError, MalformedRecordError
from petfood_sim.scoring.config import ScoringConfig
from petfood_sim.simulation.batch import (
    BatchConfig,
    BatchPhase,
    BatchRunner,
    PairSimulator,
    run_batch,
    simulate_pair,
)


@pytest.fixture
def product():
    return create_sample_product()


@pytest.fixture
def pairs():
    return create_sample_pairs(300, seed=42)


class TestBatchRunner:
    """Tests for BatchRunner class."""

    @pytest.fixture
    def runner(self):
        return BatchRunner(batch_config=BatchConfig(max_workers=4, chunk_size=50))

    def test_counts_are_consistent(self, runner, pairs, product):
        stats = runner.run(pairs, product)

        assert stats.total_samples == 300
        assert stats.requested_samples == 300
        assert stats.skipped_count == 0
        assert sum(stats.purchase_intent_distribution.values()) == 300
        assert sum(stats.price_perception_distribution.values()) == 300
        assert sum(stats.digestive_risk_distribution.values()) == 300
        assert sum(stats.scenario_distribution.values()) == 300
        assert sum(s.count for s in stats.segment_analysis) == 300
        assert runner.phase == BatchPhase.COMPLETED

    def test_distribution_keys_are_complete(self, runner, pairs, product):
        stats = runner.run(pairs[:5], product)
        assert list(stats.purchase_intent_distribution) == ["high", "medium", "low"]
        assert list(stats.price_perception_distribution) == [
            "cheap", "reasonable", "expensive", "too-expensive",
        ]
        assert list(stats.digestive_risk_distribution) == ["low", "medium", "high"]

    def test_ranked_signals(self, runner, pairs, product):
        stats = runner.run(pairs, product)

        assert len(stats.top_concerns) <= 5
        assert len(stats.top_triggers) <= 5
        for ranked in (stats.top_concerns, stats.top_triggers):
            counts = [s.count for s in ranked]
            assert counts == sorted(counts, reverse=True)
            for signal in ranked:
                assert signal.count <= 300
                assert signal.percentage == round(100.0 * signal.count / 300, 1)

        # Every pair gets the trial-pack trigger exactly once
        top = stats.top_triggers[0]
        assert top.text == "trial pack to test palatability"
        assert top.count == 300
        assert top.percentage == 100.0

    def test_segments_in_declaration_order(self, runner, pairs, product):
        stats = runner.run(pairs, product)
        order = [p.value for p in FeedingPhilosophy]
        segments = [s.segment for s in stats.segment_analysis]
        assert segments == [name for name in order if name in segments]
        for segment in stats.segment_analysis:
            assert segment.key_insight

    def test_malformed_pairs_are_skipped_and_counted(self, runner, pairs, product):
        records = [p.to_dict() for p in pairs[:20]]
        records[3] = {"id": "broken-owner", "owner": {"id": "o"}, "pet": records[3]["pet"]}
        records[7] = {"id": "no-pet", "owner": records[7]["owner"]}
        records.append("not a record")

        stats = runner.run(records, product)

        assert stats.total_samples == 21
        assert stats.skipped_count == 3
        assert stats.completed_samples == 18
        assert sum(stats.purchase_intent_distribution.values()) == 18
        assert [r.pair_id for r in stats.skipped_records] == ["broken-owner", "no-pet", "#20"]
        assert "feeding_philosophy" in stats.skipped_records[0].reason

    def test_malformed_product_skips_every_pair(self, runner, pairs):
        stats = runner.run(pairs[:10], {"id": "bad-product", "price": 100})

        assert stats.product_id == "bad-product"
        assert stats.total_samples == 10
        assert stats.skipped_count == 10
        assert sum(stats.purchase_intent_distribution.values()) == 0
        assert stats.mean_intent_score == 0.0

    def test_idempotent(self, runner, pairs, product):
        first = runner.run(pairs, product)
        second = runner.run(pairs, product)
        assert first.to_dict() == second.to_dict()

    def test_chunking_does_not_change_counts(self, pairs, product):
        parallel = BatchRunner(batch_config=BatchConfig(max_workers=8, chunk_size=7)).run(pairs, product)
        serial = BatchRunner(batch_config=BatchConfig(max_workers=1, chunk_size=1000)).run(pairs, product)

        assert parallel.purchase_intent_distribution == serial.purchase_intent_distribution
        assert parallel.scenario_distribution == serial.scenario_distribution
        assert parallel.top_concerns == serial.top_concerns
        assert parallel.top_triggers == serial.top_triggers
        assert parallel.mean_intent_score == pytest.approx(serial.mean_intent_score)
        assert parallel.mean_nps == pytest.approx(serial.mean_nps)

    def test_callbacks(self, runner, pairs, product):
        results = []
        progress = []
        runner.on_result(results.append)
        runner.on_progress(lambda done, total: progress.append((done, total)))

        runner.run(pairs[:120], product)

        assert len(results) == 120
        assert len(progress) == 3
        assert max(progress) == (120, 120)

    def test_cancel_stops_new_chunks(self, pairs, product):
        runner = BatchRunner(batch_config=BatchConfig(max_workers=1, chunk_size=25))
        runner.on_progress(lambda done, total: runner.cancel())

        stats = runner.run(pairs, product)

        assert stats.cancelled
        assert stats.requested_samples == 300
        assert stats.total_samples == 25
        assert runner.phase == BatchPhase.CANCELLED

    def test_cancel_inside_a_chunk(self, pairs, product):
        runner = BatchRunner()
        results = []

        def stop_after_first(result):
            results.append(result)
            runner.cancel()

        runner.on_result(stop_after_first)
        stats = runner.run(pairs[:200], product)

        assert stats.cancelled
        assert stats.total_samples == 1
        assert len(results) == 1
        assert runner.phase == BatchPhase.CANCELLED

    def test_run_after_cancel_starts_fresh(self, pairs, product):
        runner = BatchRunner(batch_config=BatchConfig(max_workers=1, chunk_size=25))
        runner.cancel()
        first = runner.run(pairs[:50], product)
        second = runner.run(pairs[:50], product)

        assert not first.cancelled
        assert first.total_samples == 50
        assert not second.cancelled
        assert second.total_samples == 50
        assert runner.phase == BatchPhase.COMPLETED

    def test_cancel_on_last_pair_is_not_reported(self, pairs, product):
        runner = BatchRunner()
        runner.on_progress(lambda done, total: runner.cancel())
        stats = runner.run(pairs[:40], product)

        assert stats.total_samples == 40
        assert not stats.cancelled

    def test_empty_batch(self, runner, product):
        stats = runner.run([], product)
        assert stats.total_samples == 0
        assert stats.mean_nps == 0.0
        assert stats.top_concerns == []
        assert stats.segment_analysis == []

    def test_invalid_scoring_config_is_fatal(self):
        config = ScoringConfig()
        config.decision.buy_min_score = 30
        with pytest.raises(ConfigurationError):
            BatchRunner(config)

    def test_invalid_batch_config_is_fatal(self):
        with pytest.raises(ConfigurationError):
            BatchRunner(batch_config=BatchConfig(max_workers=0))

    def test_run_batch_helper(self, pairs, product):
        stats = run_batch(pairs[:30], product)
        assert stats.total_samples == 30

    def test_to_json(self, runner, pairs, product):
        stats = runner.run(pairs[:10], product)
        text = stats.to_json()
        assert '"skipped_count": 0' in text
        assert '"top_concerns"' in text


class TestSimulatePair:
    """Tests for single-pair simulation."""

    def test_accepts_mappings(self, pairs, product):
        result = simulate_pair(pairs[0].to_dict(), product.to_dict())
        assert result.pair.to_dict() == pairs[0].to_dict()
        assert result.analysis.persona_id == pairs[0].id
        assert result.analysis.product_id == product.id

    def test_malformed_pair_raises(self, product):
        with pytest.raises(MalformedRecordError):
            simulate_pair({"id": "x"}, product)

    def test_row_is_flat(self, pairs, product):
        row = PairSimulator().simulate(pairs[0], product).to_row()
        assert row["pair_id"] == pairs[0].id
        assert all(not isinstance(v, (list, dict)) for v in row.values())


class TestStatsAccumulator:
    """Tests for StatsAccumulator class."""

    def _fold(self, simulations):
        acc = StatsAccumulator()
        for sim in simulations:
            acc.add(sim.pair.owner.feeding_philosophy, sim.owner_result, sim.pet_result, sim.analysis)
        return acc

    def test_merge_matches_single_fold(self, pairs, product):
        simulator = PairSimulator()
        simulations = [simulator.simulate(p, product) for p in pairs[:60]]

        whole = self._fold(simulations).finalize(product.id)
        merged = self._fold(simulations[:25]).merge(self._fold(simulations[25:])).finalize(product.id)

        assert whole.purchase_intent_distribution == merged.purchase_intent_distribution
        assert whole.top_concerns == merged.top_concerns
        assert [(s.segment, s.count, s.key_insight) for s in whole.segment_analysis] == \
            [(s.segment, s.count, s.key_insight) for s in merged.segment_analysis]
        assert whole.mean_repurchase_rate == pytest.approx(merged.mean_repurchase_rate)

    def test_concerns_counted_once_per_pair(self, pairs, product):
        sim = PairSimulator().simulate(pairs[0], product)
        sim.owner_result.objections = ["price too high", "price too high"]
        sim.owner_result.ingredient_concerns = ["price too high"]

        acc = self._fold([sim])
        assert acc.concerns["price too high"] == 1

    def test_skipped_records(self):
        acc = StatsAccumulator()
        acc.add_skipped("p1", "missing owner")
        stats = acc.finalize("prod", requested_samples=5)

        assert stats.total_samples == 1
        assert stats.skipped_count == 1
        assert stats.requested_samples == 5

    def test_rank_ties_break_alphabetically(self):
        from collections import Counter

        ranked = rank_signals(Counter({"b": 2, "a": 2, "c": 5}), total=10, top_n=2)
        assert [(s.text, s.count, s.percentage) for s in ranked] == [("c", 5, 50.0), ("a", 2, 20.0)]


class TestExport:
    """Tests for CSV export."""

    def test_export_results_csv(self, tmp_path, pairs, product):
        simulator = PairSimulator()
        rows = [simulator.simulate(p, product).to_row() for p in pairs[:5]]
        path = tmp_path / "results.csv"

        written = export_results_csv(rows, str(path))

        assert written == 5
        with open(path, newline="", encoding="utf-8") as f:
            loaded = list(csv.DictReader(f))
        assert [r["pair_id"] for r in loaded] == [p.id for p in pairs[:5]]

    def test_export_nothing(self, tmp_path):
        assert export_results_csv([], str(tmp_path / "empty.csv")) == 0
