"""Tests for scoring primitives and configuration."""

import json

import pytest

from petfood_sim.errors import ConfigurationError
from petfood_sim.scoring.config import PriceBands, ScoringConfig, load_config
from petfood_sim.scoring.primitives import (
    Level,
    ReasonKind,
    ReasonTrace,
    ScoreAccumulator,
    band,
    clamp,
    contains_any,
    first_match,
    has_item,
    lexical_match,
    normalize_term,
)


class TestClampAndBand:
    """Tests for clamp and band."""

    def test_clamp_default_range(self):
        assert clamp(120) == 100
        assert clamp(-5) == 0
        assert clamp(42.5) == 42.5

    def test_clamp_custom_range(self):
        assert clamp(-150, -100, 100) == -100

    def test_band_boundaries_are_inclusive(self):
        assert band(70, 70, 50) == Level.HIGH
        assert band(69.9, 70, 50) == Level.MEDIUM
        assert band(50, 70, 50) == Level.MEDIUM
        assert band(49.9, 70, 50) == Level.LOW

    def test_band_is_monotone(self):
        levels = [band(score, 70, 50) for score in range(0, 101)]
        assert all(a <= b for a, b in zip(levels, levels[1:]))

    def test_level_ordering(self):
        assert Level.LOW < Level.MEDIUM < Level.HIGH
        assert Level.HIGH >= Level.HIGH
        assert not Level.MEDIUM > Level.HIGH


class TestScoreAccumulator:
    """Tests for ScoreAccumulator class."""

    def test_value_is_clamped_only_on_read(self):
        acc = ScoreAccumulator(base=90)
        acc.add(30, "big bonus").add(-25, "penalty")
        assert acc.raw == 95
        assert acc.value == 95

        acc.add(20, "overflow")
        assert acc.raw == 115
        assert acc.value == 100

    def test_add_if_skips_false_conditions(self):
        acc = ScoreAccumulator(base=50)
        acc.add_if(False, 10, "never")
        acc.add_if(True, 5, "always")
        assert acc.value == 55
        assert acc.factors() == ["always"]

    def test_zero_deltas_not_recorded(self):
        acc = ScoreAccumulator(base=50).add(0, "nothing")
        assert acc.factors() == []

    def test_positive_factors(self):
        acc = ScoreAccumulator(base=50).add(5, "up").add(-5, "down")
        assert acc.factors(positive_only=True) == ["up"]

    def test_top_factors_by_magnitude_stable(self):
        acc = ScoreAccumulator(base=50)
        acc.add(5, "a").add(-10, "b").add(10, "c").add(1, "d")
        assert acc.top_factors(3) == ["b", "c", "a"]


class TestReasonTrace:
    """Tests for ReasonTrace class."""

    def test_keeps_insertion_order(self):
        trace = ReasonTrace()
        trace.add(ReasonKind.PRICE, "price")
        trace.extend(ReasonKind.TRUST, ["t1", "t2"])
        trace.add(ReasonKind.CONCLUSION, "done")

        assert trace.render() == ["price", "t1", "t2", "done"]
        assert trace.kinds() == [
            ReasonKind.PRICE, ReasonKind.TRUST, ReasonKind.TRUST, ReasonKind.CONCLUSION,
        ]
        assert len(trace) == 4

    def test_empty_text_ignored(self):
        trace = ReasonTrace().add(ReasonKind.CONCERN, "")
        assert len(trace) == 0


class TestLexicalMatching:
    """Tests for separator-insensitive matching."""

    def test_normalize_term(self):
        assert normalize_term("Ingredient-Safety") == "ingredient safety"
        assert normalize_term("  grain_free  ") == "grain free"

    def test_lexical_match_across_separators(self):
        assert lexical_match("ingredient-safety", "Ingredient safety tested")
        assert not lexical_match("", "anything")

    def test_contains_any(self):
        assert contains_any(["Fresh Salmon", "peas"], ["salmon"])
        assert not contains_any(["peas"], ["salmon", "beef"])

    def test_first_match(self):
        assert first_match(["duck", "chicken meal"], ["chicken"]) == ("chicken meal", "chicken")
        assert first_match(["duck"], ["chicken"]) is None

    def test_has_item_is_exact_after_normalizing(self):
        assert has_item(["Sensitive_Stomach"], "sensitive-stomach")
        assert not has_item(["sensitive stomach issues"], "sensitive-stomach")


class TestScoringConfig:
    """Tests for ScoringConfig validation and loading."""

    def test_defaults_are_valid(self):
        config = ScoringConfig()
        assert config.problems() == []
        assert config.ensure_valid() is config

    def test_buy_band_must_exceed_not_buy_band(self):
        config = ScoringConfig()
        config.decision.buy_min_score = 40
        config.decision.not_buy_max_score = 40

        with pytest.raises(ConfigurationError) as excinfo:
            config.ensure_valid()
        assert any("buy_min_score" in p for p in excinfo.value.problems)

    def test_inverted_intent_thresholds_rejected(self):
        config = ScoringConfig()
        config.intent.high_threshold = 40
        config.intent.medium_threshold = 60
        with pytest.raises(ConfigurationError):
            config.ensure_valid()

    def test_overlapping_price_breakpoints_rejected(self):
        config = ScoringConfig()
        config.price_bands["scientific"] = PriceBands(cheap_below=300, expensive_above=200)
        with pytest.raises(ConfigurationError) as excinfo:
            config.ensure_valid()
        assert any("overlap" in p for p in excinfo.value.problems)

    def test_every_problem_reported(self):
        config = ScoringConfig()
        config.decision.buy_min_score = 10
        config.pet.risk_high_threshold = 5
        config.loyalty.repurchase["surprise"] = (90, 10)
        problems = config.problems()
        assert len(problems) >= 3

    def test_from_dict_overlays_partial_values(self):
        config = ScoringConfig.from_dict({
            "intent": {"high_threshold": 80},
            "price_bands": {"budget-driven": {"too_expensive_above": 300}},
            "trusted_brands": ["PetChoice", "Acme"],
        })
        assert config.intent.high_threshold == 80
        assert config.intent.medium_threshold == 50
        assert config.price_bands["budget-driven"].too_expensive_above == 300
        assert config.price_bands["budget-driven"].cheap_below == 100
        assert config.trusted_brands == ["PetChoice", "Acme"]

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ConfigurationError) as excinfo:
            ScoringConfig.from_dict({"intent": {"hihg_threshold": 80}})
        assert "intent.hihg_threshold" in str(excinfo.value)

    def test_from_dict_rejects_wrong_types(self):
        with pytest.raises(ConfigurationError):
            ScoringConfig.from_dict({"decision": {"buy_min_score": "high"}})

    def test_from_dict_validates_result(self):
        with pytest.raises(ConfigurationError):
            ScoringConfig.from_dict({"decision": {"not_buy_max_score": 90}})

    def test_bands_for_high_net_worth(self):
        config = ScoringConfig()
        assert config.bands_for("scientific", high_net_worth=True) is config.price_bands["premium"]
        assert config.bands_for("budget-driven", high_net_worth=True) is config.price_bands["budget-driven"]
        assert config.bands_for("follower") is config.price_bands["follower"]

    def test_round_trip_through_json(self, tmp_path):
        path = tmp_path / "config.json"
        original = ScoringConfig()
        original.intent.high_threshold = 75
        path.write_text(original.to_json(), encoding="utf-8")

        loaded = load_config(str(path))
        assert loaded.intent.high_threshold == 75
        assert loaded.to_dict() == ScoringConfig.from_dict(json.loads(original.to_json())).to_dict()

    def test_load_config_rejects_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_non_numeric_price_delta_rejected_at_load(self):
        with pytest.raises(ConfigurationError) as excinfo:
            ScoringConfig.from_dict({"intent": {"price_deltas": {"reasonable": "twenty"}}})
        assert any(p.startswith("intent.price_deltas.reasonable") for p in excinfo.value.problems)

    def test_non_numeric_price_score_rejected_at_load(self):
        with pytest.raises(ConfigurationError) as excinfo:
            ScoringConfig.from_dict({"price_scores": {"cheap": "high"}})
        assert any("price_scores.cheap" in p for p in excinfo.value.problems)

    def test_malformed_loyalty_band_rejected_at_load(self):
        with pytest.raises(ConfigurationError):
            ScoringConfig.from_dict({"loyalty": {"nps": {"surprise": ["a", 70]}}})
        with pytest.raises(ConfigurationError):
            ScoringConfig.from_dict({"loyalty": {"repurchase": {"rejection": [5]}}})

    def test_partial_table_overlay_keeps_other_entries(self):
        config = ScoringConfig.from_dict({
            "intent": {"price_deltas": {"reasonable": 25}},
            "loyalty": {"nps": {"surprise": [45, 75]}},
        })
        assert config.intent.price_deltas["reasonable"] == 25
        assert config.intent.price_deltas["too-expensive"] == -30
        assert config.loyalty.nps["surprise"] == (45, 75)
        assert config.loyalty.nps["rejection"] == (-60, -10)

    def test_loaded_table_values_score_cleanly(self):
        from petfood_sim.agents.owner import OwnerAgent
        from petfood_sim.cli import create_sample_pairs, create_sample_product

        config = ScoringConfig.from_dict({"intent": {"price_deltas": {"reasonable": 30}}})
        pair = create_sample_pairs(1, seed=5)[0]
        result = OwnerAgent(config).simulate(pair.owner, create_sample_product())
        assert 0 <= result.intent_score <= 100

    def test_mistyped_assignment_caught_on_revalidation(self):
        config = ScoringConfig()
        config.price_scores["cheap"] = "high"
        with pytest.raises(ConfigurationError):
            config.ensure_valid()

    def test_load_config_rejects_wrong_table_types(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"price_scores": {"cheap": "high"}}), encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(str(path))
