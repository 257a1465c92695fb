"""
Batch runs: one product against many persona pairs.

Each pair goes through the owner agent, the pet agent and the
interaction analyst. Pairs are split into fixed-size chunks that run on
a thread pool; every chunk reduces into its own StatsAccumulator and
the partials are merged in chunk order, so a run is reproducible no
matter how the threads are scheduled.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import threading

from loguru import logger

from ..agents.owner import OwnerAgent, OwnerSimulationResult
from ..agents.pet import PetAgent, PetSimulationResult
from ..agents.profiles import PersonaPair, Product
from ..analysis.metrics import BatchStatistics, StatsAccumulator
from ..errors import ConfigurationError, MalformedRecordError
from ..scoring.config import ScoringConfig
from .interaction import InteractionAnalysis, InteractionAnalyst


PairInput = Union[PersonaPair, Mapping[str, Any]]
ProductInput = Union[Product, Mapping[str, Any]]


class BatchPhase(Enum):
    """Phases of a batch run."""
    SETUP = "setup"
    RUNNING = "running"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


@dataclass
class BatchConfig:
    """Execution settings for a batch run."""
    max_workers: int = 4
    chunk_size: int = 250
    top_n: int = 5

    def validate(self) -> "BatchConfig":
        problems = []
        if self.max_workers < 1:
            problems.append(f"max_workers must be at least 1, got {self.max_workers}")
        if self.chunk_size < 1:
            problems.append(f"chunk_size must be at least 1, got {self.chunk_size}")
        if self.top_n < 1:
            problems.append(f"top_n must be at least 1, got {self.top_n}")
        if problems:
            raise ConfigurationError(problems)
        return self


@dataclass
class PairSimulation:
    """The full result chain for one persona pair."""
    pair: PersonaPair
    owner_result: OwnerSimulationResult
    pet_result: PetSimulationResult
    analysis: InteractionAnalysis

    def to_row(self) -> Dict[str, Any]:
        """Flat record for CSV export."""
        owner = self.owner_result
        pet = self.pet_result
        analysis = self.analysis
        return {
            "pair_id": self.pair.id,
            "product_id": analysis.product_id,
            "feeding_philosophy": self.pair.owner.feeding_philosophy.value,
            "species": self.pair.pet.species.value,
            "price_perception": owner.price_perception.level.value,
            "trust_score": owner.trust.score,
            "intent_score": owner.intent_score,
            "purchase_intent": owner.purchase_intent.value,
            "final_decision": owner.final_decision.value,
            "smell_attraction": pet.smell_attraction,
            "taste_acceptance": pet.taste_acceptance,
            "digestive_risk": pet.digestive_risk.value,
            "scenario": analysis.scenario.value,
            "repurchase_rate": analysis.repurchase_rate,
            "nps_score": analysis.nps_score,
            "churn_risk": analysis.churn_risk.value,
            "match_score": analysis.match_score,
            "combined_decision": analysis.combined_decision.value,
            "objections": "; ".join(owner.objections),
            "trigger_points": "; ".join(owner.trigger_points),
        }


class PairSimulator:
    """The owner, pet and interaction stages bound to one configuration."""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = (config or ScoringConfig()).ensure_valid()
        self.owner_agent = OwnerAgent(self.config)
        self.pet_agent = PetAgent(self.config)
        self.analyst = InteractionAnalyst(self.config)

    def simulate(self, pair: PersonaPair, product: Product) -> PairSimulation:
        owner_result = self.owner_agent.simulate(pair.owner, product)
        pet_result = self.pet_agent.simulate(pair.pet, product)
        analysis = self.analyst.analyze(owner_result, pet_result, persona_id=pair.id)
        return PairSimulation(pair, owner_result, pet_result, analysis)


def simulate_pair(
    pair: PairInput,
    product: ProductInput,
    config: Optional[ScoringConfig] = None,
) -> PairSimulation:
    """Run one pair through the whole pipeline. Malformed records raise."""
    return PairSimulator(config).simulate(_coerce_pair(pair), _coerce_product(product))


class BatchRunner:
    """
    Runs the pair pipeline over a population and reduces it to statistics.

    A malformed pair or product is recorded as a skipped entry and the
    run carries on; any other error propagates. ``cancel()`` stops the
    current run from starting further pairs, and the statistics then
    cover the pairs that were attempted before the stop. Each call to
    ``run()`` starts uncancelled.
    """

    def __init__(
        self,
        scoring_config: Optional[ScoringConfig] = None,
        batch_config: Optional[BatchConfig] = None,
    ):
        self.simulator = PairSimulator(scoring_config)
        self.batch_config = (batch_config or BatchConfig()).validate()
        self.phase = BatchPhase.SETUP
        self._cancel = threading.Event()
        self._progress_lock = threading.Lock()
        self._processed = 0
        self._on_result: List[Callable[[PairSimulation], None]] = []
        self._on_progress: List[Callable[[int, int], None]] = []

    @property
    def config(self) -> ScoringConfig:
        return self.simulator.config

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def on_result(self, callback: Callable[[PairSimulation], None]) -> None:
        """Register callback for each completed pair."""
        self._on_result.append(callback)

    def on_progress(self, callback: Callable[[int, int], None]) -> None:
        """Register callback receiving (processed, total) after each chunk."""
        self._on_progress.append(callback)

    def cancel(self) -> None:
        """Stop launching new pairs. Pairs already being scored finish."""
        self._cancel.set()

    def run(self, pairs: Sequence[PairInput], product: ProductInput) -> BatchStatistics:
        pairs = list(pairs)
        total = len(pairs)
        settings = self.batch_config
        self.phase = BatchPhase.RUNNING
        self._cancel.clear()
        self._processed = 0

        product_obj, product_error = _prepare_product(product)
        product_id = product_obj.id if product_obj is not None else _raw_product_id(product)

        chunks = [
            (start, pairs[start:start + settings.chunk_size])
            for start in range(0, total, settings.chunk_size)
        ]
        logger.info(
            f"batch_start | product={product_id} | pairs={total} | "
            f"chunks={len(chunks)} | workers={settings.max_workers}"
        )

        if len(chunks) <= 1 or settings.max_workers == 1:
            partials = [
                self._run_chunk(start, chunk, product_obj, product_error, total)
                for start, chunk in chunks
            ]
        else:
            with ThreadPoolExecutor(max_workers=settings.max_workers) as pool:
                futures = [
                    pool.submit(self._run_chunk, start, chunk, product_obj, product_error, total)
                    for start, chunk in chunks
                ]
                partials = [future.result() for future in futures]

        merged = StatsAccumulator()
        for partial in partials:
            if partial is not None:
                merged.merge(partial)

        cancelled = self.cancelled and self._processed < total
        stats = merged.finalize(
            product_id,
            requested_samples=total,
            top_n=settings.top_n,
            cancelled=cancelled,
        )

        if cancelled:
            self.phase = BatchPhase.CANCELLED
            logger.warning(
                f"batch_cancelled | product={product_id} | "
                f"attempted={stats.total_samples} | requested={total}"
            )
        else:
            self.phase = BatchPhase.COMPLETED
        logger.info(
            f"batch_done | product={product_id} | completed={stats.completed_samples} | "
            f"skipped={stats.skipped_count} | mean_intent={stats.mean_intent_score}"
        )
        return stats

    def _run_chunk(
        self,
        start: int,
        chunk: Sequence[PairInput],
        product: Optional[Product],
        product_error: Optional[MalformedRecordError],
        total: int,
    ) -> Optional[StatsAccumulator]:
        if self._cancel.is_set():
            return None

        acc = StatsAccumulator()
        attempted = 0
        for offset, raw in enumerate(chunk):
            if self._cancel.is_set():
                break
            attempted += 1
            label = _pair_label(raw, start + offset)
            if product_error is not None:
                self._skip(acc, label, f"product: {product_error}")
                continue
            try:
                pair = _coerce_pair(raw)
            except MalformedRecordError as e:
                self._skip(acc, label, str(e))
                continue

            result = self.simulator.simulate(pair, product)
            acc.add(pair.owner.feeding_philosophy, result.owner_result, result.pet_result, result.analysis)
            for callback in self._on_result:
                callback(result)

        with self._progress_lock:
            self._processed += attempted
            processed = self._processed
            for callback in self._on_progress:
                callback(processed, total)

        logger.debug(
            f"chunk_done | start={start} | attempted={attempted}/{len(chunk)} | "
            f"skipped={len(acc.skipped)} | processed={processed}/{total}"
        )
        return acc

    def _skip(self, acc: StatsAccumulator, pair_id: str, reason: str) -> None:
        logger.warning(f"record_skipped | pair={pair_id} | reason={reason}")
        acc.add_skipped(pair_id, reason)


def run_batch(
    pairs: Sequence[PairInput],
    product: ProductInput,
    config: Optional[ScoringConfig] = None,
    batch_config: Optional[BatchConfig] = None,
) -> BatchStatistics:
    """Run a batch with a fresh runner."""
    return BatchRunner(config, batch_config).run(pairs, product)


def _coerce_pair(pair: PairInput) -> PersonaPair:
    if isinstance(pair, PersonaPair):
        return pair
    return PersonaPair.from_dict(pair)


def _coerce_product(product: ProductInput) -> Product:
    if isinstance(product, Product):
        return product
    return Product.from_dict(product)


def _prepare_product(product: ProductInput) -> Tuple[Optional[Product], Optional[MalformedRecordError]]:
    try:
        return _coerce_product(product), None
    except MalformedRecordError as e:
        logger.error(f"product_invalid | reason={e}")
        return None, e


def _raw_product_id(product: Any) -> str:
    if isinstance(product, Mapping) and product.get("id") is not None:
        return str(product["id"])
    return "<unknown>"


def _pair_label(raw: Any, index: int) -> str:
    if isinstance(raw, PersonaPair):
        return str(raw.id)
    if isinstance(raw, Mapping) and raw.get("id") not in (None, ""):
        return str(raw["id"])
    return f"#{index}"
