"""
Interaction analysis between an owner's expectation and a pet's reaction.

Classifies one encounter into an expectation-confirmation scenario and
derives loyalty estimates (repurchase rate, NPS, churn risk) from it.
The scenario is always computed from the two agent results, never
assigned independently.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..agents.owner import OwnerSimulationResult
from ..agents.pet import DigestiveRisk, PetSimulationResult
from ..scoring.config import ScoringConfig
from ..scoring.primitives import Level, band, clamp


class Scenario(Enum):
    """Expectation-confirmation outcomes, listed in evaluation order."""
    REJECTION = "rejection"
    DISAPPOINTMENT = "disappointment"
    SURPRISE = "surprise"
    SATISFACTION = "satisfaction"


class ChurnRisk(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CombinedDecision(Enum):
    STRONGLY_RECOMMEND = "strongly-recommend"
    RECOMMEND = "recommend"
    NEUTRAL = "neutral"
    NOT_RECOMMEND = "not-recommend"


_DESCRIPTIONS = {
    Scenario.SURPRISE: "Exceeded expectations: the pet took to the food better than the owner expected",
    Scenario.SATISFACTION: "Met expectations: the pet's reaction matched what the owner hoped for",
    Scenario.DISAPPOINTMENT: "Fell short of expectations: the owner expected more than the pet delivered",
    Scenario.REJECTION: "Rejected: the pet's reaction rules the product out whatever the owner thinks",
}


@dataclass
class InteractionAnalysis:
    """Outcome of reconciling one owner result with one pet result."""
    persona_id: str
    product_id: str
    scenario: Scenario
    scenario_description: str
    repurchase_rate: int
    nps_score: int
    churn_risk: ChurnRisk
    key_insight: str
    recommendation: str
    match_score: float
    combined_decision: CombinedDecision

    def to_dict(self) -> Dict[str, Any]:
        return {
            "persona_id": self.persona_id,
            "product_id": self.product_id,
            "scenario": self.scenario.value,
            "scenario_description": self.scenario_description,
            "repurchase_rate": self.repurchase_rate,
            "nps_score": self.nps_score,
            "churn_risk": self.churn_risk.value,
            "key_insight": self.key_insight,
            "recommendation": self.recommendation,
            "match_score": self.match_score,
            "combined_decision": self.combined_decision.value,
        }


class InteractionAnalyst:
    """
    Reconciles owner and pet results into a scenario and loyalty metrics.

    Precedence: rejection, then disappointment, then surprise, with
    satisfaction as the default. A high digestive risk is therefore a
    rejection no matter how keen the owner is.
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = (config or ScoringConfig()).ensure_valid()

    def analyze(
        self,
        owner_result: OwnerSimulationResult,
        pet_result: PetSimulationResult,
        persona_id: Optional[str] = None,
    ) -> InteractionAnalysis:
        if owner_result.product_id != pet_result.product_id:
            raise ValueError(
                f"owner result is for product {owner_result.product_id} "
                f"but pet result is for {pet_result.product_id}"
            )

        scenario = self.classify(owner_result, pet_result)
        repurchase, nps = self.loyalty_metrics(scenario, owner_result, pet_result)
        match = self.match_score(owner_result, pet_result)
        insight, recommendation = self._templates(scenario, owner_result, pet_result)

        return InteractionAnalysis(
            persona_id=persona_id or owner_result.persona_id,
            product_id=owner_result.product_id,
            scenario=scenario,
            scenario_description=_DESCRIPTIONS[scenario],
            repurchase_rate=repurchase,
            nps_score=nps,
            churn_risk=self.churn_risk(repurchase),
            key_insight=insight,
            recommendation=recommendation,
            match_score=match,
            combined_decision=self.combined_decision(match),
        )

    def acceptance_level(self, pet_result: PetSimulationResult) -> Level:
        t = self.config.scenario
        return band(pet_result.acceptance_score, t.acceptance_high, t.acceptance_medium)

    def classify(
        self,
        owner_result: OwnerSimulationResult,
        pet_result: PetSimulationResult,
    ) -> Scenario:
        intent = owner_result.purchase_intent.level
        acceptance = self.acceptance_level(pet_result)
        risk = pet_result.digestive_risk.level

        if risk == Level.HIGH or acceptance == Level.LOW:
            return Scenario.REJECTION
        if intent == Level.HIGH and (acceptance <= Level.MEDIUM or risk == Level.MEDIUM):
            return Scenario.DISAPPOINTMENT
        if intent <= Level.MEDIUM and acceptance == Level.HIGH and risk == Level.LOW:
            return Scenario.SURPRISE
        return Scenario.SATISFACTION

    def loyalty_metrics(
        self,
        scenario: Scenario,
        owner_result: OwnerSimulationResult,
        pet_result: PetSimulationResult,
    ) -> Tuple[int, int]:
        """Repurchase rate and NPS, placed inside the scenario's bands by pair fit."""
        bands = self.config.loyalty
        fit = clamp(
            (pet_result.acceptance_score + owner_result.intent_score + owner_result.trust.score) / 300,
            0.0,
            1.0,
        )
        low, high = bands.repurchase[scenario.value]
        repurchase = round(clamp(low + (high - low) * fit, 0, 100))
        low, high = bands.nps[scenario.value]
        nps = round(clamp(low + (high - low) * fit, -100, 100))
        return repurchase, nps

    def churn_risk(self, repurchase_rate: float) -> ChurnRisk:
        bands = self.config.loyalty
        if repurchase_rate >= bands.churn_low_min_repurchase:
            return ChurnRisk.LOW
        if repurchase_rate >= bands.churn_medium_min_repurchase:
            return ChurnRisk.MEDIUM
        return ChurnRisk.HIGH

    def match_score(
        self,
        owner_result: OwnerSimulationResult,
        pet_result: PetSimulationResult,
    ) -> float:
        bands = self.config.loyalty
        total_weight = bands.match_intent_weight + bands.match_acceptance_weight
        score = (
            bands.match_intent_weight * owner_result.intent_score
            + bands.match_acceptance_weight * pet_result.acceptance_score
        ) / total_weight
        if pet_result.digestive_risk == DigestiveRisk.MEDIUM:
            score -= bands.match_medium_risk_penalty
        elif pet_result.digestive_risk == DigestiveRisk.HIGH:
            score -= bands.match_high_risk_penalty
        return round(clamp(score), 1)

    def combined_decision(self, match_score: float) -> CombinedDecision:
        bands = self.config.loyalty
        if match_score >= bands.strongly_recommend_min:
            return CombinedDecision.STRONGLY_RECOMMEND
        if match_score >= bands.recommend_min:
            return CombinedDecision.RECOMMEND
        if match_score >= bands.neutral_min:
            return CombinedDecision.NEUTRAL
        return CombinedDecision.NOT_RECOMMEND

    def _templates(
        self,
        scenario: Scenario,
        owner: OwnerSimulationResult,
        pet: PetSimulationResult,
    ) -> Tuple[str, str]:
        intent = owner.intent_score
        acceptance = pet.acceptance_score
        risk = pet.digestive_risk.value

        if scenario == Scenario.SURPRISE:
            return (
                f"The pet's response (acceptance {acceptance:.0f}) outran a cautious owner "
                f"(intent {intent:.0f}); seeing the pet enjoy it is what converts this household",
                "Lead with trial packs and real feeding videos so hesitant owners "
                "can see the reaction for themselves",
            )
        if scenario == Scenario.SATISFACTION:
            return (
                f"Expectations met: owner intent {intent:.0f} is matched by pet acceptance "
                f"{acceptance:.0f} with {risk} digestive risk",
                "Reinforce visible results such as stool quality and coat condition, "
                "and reward repeat purchases with a subscription",
            )
        if scenario == Scenario.DISAPPOINTMENT:
            return (
                f"High owner expectations (intent {intent:.0f}) were not matched by the pet "
                f"(acceptance {acceptance:.0f}, {risk} digestive risk)",
                "Set realistic expectations in marketing and provide a gradual "
                "transition and feeding guide",
            )
        if pet.digestive_risk == DigestiveRisk.HIGH:
            return (
                f"High digestive risk overrides owner interest (intent {intent:.0f})",
                "Flag allergen and sensitivity information clearly and steer sensitive "
                "pets towards a hypoallergenic line",
            )
        return (
            f"Low palatability (acceptance {acceptance:.0f}) overrides owner interest "
            f"(intent {intent:.0f})",
            "Improve palatability or offer a small trial pack before the full-size bag",
        )
