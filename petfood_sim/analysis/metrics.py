"""
Batch statistics for population-level concept test results.

StatsAccumulator is the reduction: each worker folds its pairs into
its own accumulator, accumulators merge pairwise, and ``finalize``
turns the merged counts into an immutable BatchStatistics record.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import csv
import json

from ..agents.owner import FinalDecision, OwnerSimulationResult, PricePerceptionLevel, PurchaseIntent
from ..agents.pet import DigestiveRisk, PetSimulationResult
from ..agents.profiles import FeedingPhilosophy
from ..simulation.interaction import ChurnRisk, InteractionAnalysis, Scenario


@dataclass(frozen=True)
class RankedSignal:
    """A qualitative signal with its frequency across the batch."""
    text: str
    count: int
    percentage: float


@dataclass(frozen=True)
class SegmentSummary:
    """Results for one feeding-philosophy segment."""
    segment: str
    count: int
    mean_intent_score: float
    mean_nps: float
    key_insight: str


@dataclass(frozen=True)
class SkippedRecord:
    pair_id: str
    reason: str


@dataclass(frozen=True)
class BatchStatistics:
    """Aggregate results of one batch run against one product."""
    product_id: str
    requested_samples: int
    total_samples: int
    skipped_count: int
    purchase_intent_distribution: Dict[str, int]
    price_perception_distribution: Dict[str, int]
    digestive_risk_distribution: Dict[str, int]
    final_decision_distribution: Dict[str, int]
    scenario_distribution: Dict[str, int]
    churn_risk_distribution: Dict[str, int]
    mean_intent_score: float
    mean_trust_score: float
    mean_nps: float
    mean_repurchase_rate: float
    top_concerns: List[RankedSignal]
    top_triggers: List[RankedSignal]
    segment_analysis: List[SegmentSummary]
    skipped_records: List[SkippedRecord] = field(default_factory=list)
    cancelled: bool = False

    @property
    def completed_samples(self) -> int:
        return self.total_samples - self.skipped_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "requested_samples": self.requested_samples,
            "total_samples": self.total_samples,
            "completed_samples": self.completed_samples,
            "skipped_count": self.skipped_count,
            "cancelled": self.cancelled,
            "purchase_intent_distribution": dict(self.purchase_intent_distribution),
            "price_perception_distribution": dict(self.price_perception_distribution),
            "digestive_risk_distribution": dict(self.digestive_risk_distribution),
            "final_decision_distribution": dict(self.final_decision_distribution),
            "scenario_distribution": dict(self.scenario_distribution),
            "churn_risk_distribution": dict(self.churn_risk_distribution),
            "mean_intent_score": self.mean_intent_score,
            "mean_trust_score": self.mean_trust_score,
            "mean_nps": self.mean_nps,
            "mean_repurchase_rate": self.mean_repurchase_rate,
            "top_concerns": [
                {"concern": s.text, "count": s.count, "percentage": s.percentage}
                for s in self.top_concerns
            ],
            "top_triggers": [
                {"trigger": s.text, "count": s.count, "percentage": s.percentage}
                for s in self.top_triggers
            ],
            "segment_analysis": [
                {
                    "segment": s.segment,
                    "count": s.count,
                    "mean_intent_score": s.mean_intent_score,
                    "mean_nps": s.mean_nps,
                    "key_insight": s.key_insight,
                }
                for s in self.segment_analysis
            ],
            "skipped_records": [
                {"pair_id": r.pair_id, "reason": r.reason} for r in self.skipped_records
            ],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


class _SegmentAccumulator:
    def __init__(self):
        self.count = 0
        self.intent_sum = 0.0
        self.nps_sum = 0.0
        self.concerns: Counter = Counter()
        self.triggers: Counter = Counter()

    def merge(self, other: "_SegmentAccumulator") -> None:
        self.count += other.count
        self.intent_sum += other.intent_sum
        self.nps_sum += other.nps_sum
        self.concerns.update(other.concerns)
        self.triggers.update(other.triggers)


class StatsAccumulator:
    """
    Partial reduction over per-pair results.

    Holds only counts and sums, so merging two accumulators gives the
    same totals as folding every pair into one.
    """

    def __init__(self):
        self.completed = 0
        self.intent = Counter()
        self.price = Counter()
        self.risk = Counter()
        self.decisions = Counter()
        self.scenarios = Counter()
        self.churn = Counter()
        self.intent_sum = 0.0
        self.trust_sum = 0.0
        self.nps_sum = 0.0
        self.repurchase_sum = 0.0
        self.concerns: Counter = Counter()
        self.triggers: Counter = Counter()
        self.segments: Dict[str, _SegmentAccumulator] = {}
        self.skipped: List[SkippedRecord] = []

    @property
    def attempted(self) -> int:
        return self.completed + len(self.skipped)

    def add(
        self,
        philosophy: FeedingPhilosophy,
        owner: OwnerSimulationResult,
        pet: PetSimulationResult,
        analysis: InteractionAnalysis,
    ) -> None:
        """Fold one completed pair into the totals."""
        self.completed += 1
        self.intent[owner.purchase_intent.value] += 1
        self.price[owner.price_perception.level.value] += 1
        self.risk[pet.digestive_risk.value] += 1
        self.decisions[owner.final_decision.value] += 1
        self.scenarios[analysis.scenario.value] += 1
        self.churn[analysis.churn_risk.value] += 1
        self.intent_sum += owner.intent_score
        self.trust_sum += owner.trust.score
        self.nps_sum += analysis.nps_score
        self.repurchase_sum += analysis.repurchase_rate

        # Each signal counts once per pair so percentages stay within 100
        concerns = _unique(list(owner.objections) + list(owner.ingredient_concerns))
        triggers = _unique(owner.trigger_points)
        self.concerns.update(concerns)
        self.triggers.update(triggers)

        segment = self.segments.setdefault(philosophy.value, _SegmentAccumulator())
        segment.count += 1
        segment.intent_sum += owner.intent_score
        segment.nps_sum += analysis.nps_score
        segment.concerns.update(concerns)
        segment.triggers.update(triggers)

    def add_skipped(self, pair_id: str, reason: str) -> None:
        self.skipped.append(SkippedRecord(pair_id, reason))

    def merge(self, other: "StatsAccumulator") -> "StatsAccumulator":
        """Fold another accumulator into this one and return self."""
        self.completed += other.completed
        for mine, theirs in (
            (self.intent, other.intent),
            (self.price, other.price),
            (self.risk, other.risk),
            (self.decisions, other.decisions),
            (self.scenarios, other.scenarios),
            (self.churn, other.churn),
            (self.concerns, other.concerns),
            (self.triggers, other.triggers),
        ):
            mine.update(theirs)
        self.intent_sum += other.intent_sum
        self.trust_sum += other.trust_sum
        self.nps_sum += other.nps_sum
        self.repurchase_sum += other.repurchase_sum
        for name, segment in other.segments.items():
            self.segments.setdefault(name, _SegmentAccumulator()).merge(segment)
        self.skipped.extend(other.skipped)
        return self

    def finalize(
        self,
        product_id: str,
        requested_samples: Optional[int] = None,
        top_n: int = 5,
        cancelled: bool = False,
    ) -> BatchStatistics:
        n = self.completed
        return BatchStatistics(
            product_id=product_id,
            requested_samples=self.attempted if requested_samples is None else requested_samples,
            total_samples=self.attempted,
            skipped_count=len(self.skipped),
            purchase_intent_distribution=_distribution(self.intent, [e.value for e in PurchaseIntent][::-1]),
            price_perception_distribution=_distribution(self.price, [e.value for e in PricePerceptionLevel]),
            digestive_risk_distribution=_distribution(self.risk, [e.value for e in DigestiveRisk]),
            final_decision_distribution=_distribution(self.decisions, [e.value for e in FinalDecision]),
            scenario_distribution=_distribution(
                self.scenarios,
                [Scenario.SURPRISE.value, Scenario.SATISFACTION.value,
                 Scenario.DISAPPOINTMENT.value, Scenario.REJECTION.value],
            ),
            churn_risk_distribution=_distribution(self.churn, [e.value for e in ChurnRisk]),
            mean_intent_score=_mean(self.intent_sum, n),
            mean_trust_score=_mean(self.trust_sum, n),
            mean_nps=_mean(self.nps_sum, n),
            mean_repurchase_rate=_mean(self.repurchase_sum, n),
            top_concerns=rank_signals(self.concerns, n, top_n),
            top_triggers=rank_signals(self.triggers, n, top_n),
            segment_analysis=self._segment_summaries(),
            skipped_records=list(self.skipped),
            cancelled=cancelled,
        )

    def _segment_summaries(self) -> List[SegmentSummary]:
        summaries = []
        for philosophy in FeedingPhilosophy:
            segment = self.segments.get(philosophy.value)
            if segment is None or segment.count == 0:
                continue
            summaries.append(SegmentSummary(
                segment=philosophy.value,
                count=segment.count,
                mean_intent_score=_mean(segment.intent_sum, segment.count),
                mean_nps=_mean(segment.nps_sum, segment.count),
                key_insight=_segment_insight(segment),
            ))
        return summaries


def rank_signals(counts: Counter, total: int, top_n: int = 5) -> List[RankedSignal]:
    """Top ``top_n`` signals by count, ties broken alphabetically."""
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [
        RankedSignal(text, count, round(100.0 * count / total, 1) if total else 0.0)
        for text, count in ranked[:top_n]
        if count > 0
    ]


def export_results_csv(rows: Iterable[Dict[str, Any]], filepath: str) -> int:
    """Write per-pair result rows to CSV. Returns the number of rows written."""
    rows = list(rows)
    if not rows:
        return 0
    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)
    return len(rows)


def _segment_insight(segment: _SegmentAccumulator) -> str:
    top = rank_signals(segment.concerns, segment.count, 1)
    if top:
        signal = top[0]
        return f"Most common concern: {signal.text} ({signal.percentage:.0f}% of segment)"
    top = rank_signals(segment.triggers, segment.count, 1)
    if top:
        signal = top[0]
        return f"Most common trigger: {signal.text} ({signal.percentage:.0f}% of segment)"
    return "No recurring concerns or triggers"


def _distribution(counts: Counter, order: Sequence[str]) -> Dict[str, int]:
    return {key: counts.get(key, 0) for key in order}


def _mean(total: float, n: int) -> float:
    return round(total / n, 2) if n else 0.0


def _unique(items: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
