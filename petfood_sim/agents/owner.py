"""
Owner agent: how a pet owner weighs a product before buying.

Scores price perception, trust and purchase intent from the owner's
feeding philosophy and concerns, lists objections and triggers, and
reaches a buy / consider / not-buy decision with an ordered reasoning
trace. Pure function of (owner, product, config).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..scoring.config import PriceBands, ScoringConfig
from ..scoring.primitives import (
    Level,
    ReasonKind,
    ReasonTrace,
    ScoreAccumulator,
    band,
    clamp,
    contains_any,
    has_item,
    lexical_match,
)
from .profiles import FeedingPhilosophy, IncomeLevel, OwnerProfile, Product, TargetSpecies


class PricePerceptionLevel(Enum):
    CHEAP = "cheap"
    REASONABLE = "reasonable"
    EXPENSIVE = "expensive"
    TOO_EXPENSIVE = "too-expensive"


class PurchaseIntent(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def level(self) -> Level:
        return Level(self.value)


class FinalDecision(Enum):
    BUY = "buy"
    CONSIDER = "consider"
    NOT_BUY = "not-buy"


_PRICE_FEEDBACK = {
    PricePerceptionLevel.CHEAP: "At {price} this feels cheap, almost suspiciously so",
    PricePerceptionLevel.REASONABLE: "At {price} the price feels reasonable for what it offers",
    PricePerceptionLevel.EXPENSIVE: "At {price} this is on the expensive side",
    PricePerceptionLevel.TOO_EXPENSIVE: "At {price} this is more than I am willing to pay",
}

_CLOSING = {
    PurchaseIntent.HIGH: "Overall a strong fit; likely to buy a trial pack once reviews check out",
    PurchaseIntent.MEDIUM: "Interested but undecided; will research further before deciding",
    PurchaseIntent.LOW: "Not convinced; unlikely to buy at this point",
}


@dataclass
class PricePerception:
    score: float
    level: PricePerceptionLevel
    feedback: str


@dataclass
class TrustAssessment:
    score: float
    factors: List[str] = field(default_factory=list)


@dataclass
class OwnerSimulationResult:
    """Everything the owner agent concludes about one product."""
    persona_id: str
    product_id: str
    initial_reaction: str
    price_perception: PricePerception
    trust: TrustAssessment
    ingredient_concerns: List[str]
    purchase_intent: PurchaseIntent
    intent_score: float
    key_considerations: List[str]
    objections: List[str]
    trigger_points: List[str]
    predicted_behavior: str
    social_proof_needs: List[str]
    final_decision: FinalDecision
    reasoning: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "persona_id": self.persona_id,
            "product_id": self.product_id,
            "initial_reaction": self.initial_reaction,
            "price_perception": {
                "score": self.price_perception.score,
                "level": self.price_perception.level.value,
                "feedback": self.price_perception.feedback,
            },
            "trust": {"score": self.trust.score, "factors": list(self.trust.factors)},
            "ingredient_concerns": list(self.ingredient_concerns),
            "purchase_intent": self.purchase_intent.value,
            "intent_score": self.intent_score,
            "key_considerations": list(self.key_considerations),
            "objections": list(self.objections),
            "trigger_points": list(self.trigger_points),
            "predicted_behavior": self.predicted_behavior,
            "social_proof_needs": list(self.social_proof_needs),
            "final_decision": self.final_decision.value,
            "reasoning": list(self.reasoning),
        }


def classify_price(price: float, bands: PriceBands) -> PricePerceptionLevel:
    """Place a price into the four perception bands of one philosophy."""
    if price < bands.cheap_below:
        return PricePerceptionLevel.CHEAP
    if bands.too_expensive_above is not None and price > bands.too_expensive_above:
        return PricePerceptionLevel.TOO_EXPENSIVE
    if bands.expensive_above is not None and price > bands.expensive_above:
        return PricePerceptionLevel.EXPENSIVE
    return PricePerceptionLevel.REASONABLE


class OwnerAgent:
    """
    Rule-based model of an owner's purchase decision.

    The agent holds only its validated configuration; ``simulate`` reads
    nothing else, so one agent can serve many threads at once.
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = (config or ScoringConfig()).ensure_valid()

    def simulate(self, owner: OwnerProfile, product: Product) -> OwnerSimulationResult:
        """Score one owner against one product."""
        price = self.evaluate_price_perception(owner, product)
        trust_acc = self._trust_accumulator(owner, product, price.level)
        trust = TrustAssessment(score=trust_acc.value, factors=trust_acc.factors())
        intent_score = self._intent_accumulator(owner, product, price.level, trust.score).value
        intent = self.categorize_intent(intent_score)

        concerns = self.identify_ingredient_concerns(owner, product)
        considerations = self.extract_key_considerations(owner, product)
        objections = self.identify_objections(owner, product, price.level)
        triggers = self.identify_trigger_points(owner, price.level)
        decision = self.decide(intent_score, trust.score, len(objections))

        trace = ReasonTrace()
        trace.add(ReasonKind.PRICE, f"Price perception: {price.level.value} (score {price.score:.0f})")
        trace.extend(
            ReasonKind.TRUST,
            (f"Trust factor: {label}" for label in trust_acc.top_factors(3)),
        )
        if concerns:
            trace.add(ReasonKind.CONCERN, "Concerns: " + "; ".join(concerns))
        trace.extend(
            ReasonKind.CONSIDERATION,
            (f"Positive: {c}" for c in considerations[:3]),
        )
        trace.add(ReasonKind.CONCLUSION, _CLOSING[intent])

        return OwnerSimulationResult(
            persona_id=owner.id,
            product_id=product.id,
            initial_reaction=self.initial_reaction(owner, product),
            price_perception=price,
            trust=trust,
            ingredient_concerns=concerns,
            purchase_intent=intent,
            intent_score=intent_score,
            key_considerations=considerations,
            objections=objections,
            trigger_points=triggers,
            predicted_behavior=self.predict_behavior(owner, intent),
            social_proof_needs=self.identify_social_proof_needs(owner),
            final_decision=decision,
            reasoning=trace.render(),
        )

    # Scores

    def evaluate_price_perception(self, owner: OwnerProfile, product: Product) -> PricePerception:
        bands = self.config.bands_for(
            owner.feeding_philosophy.value,
            high_net_worth=owner.income == IncomeLevel.HIGH_NET_WORTH,
        )
        level = classify_price(product.price, bands)
        return PricePerception(
            score=self.config.price_scores[level.value],
            level=level,
            feedback=_PRICE_FEEDBACK[level].format(price=_format_price(product.price)),
        )

    def calculate_trust(self, owner: OwnerProfile, product: Product) -> TrustAssessment:
        level = self.evaluate_price_perception(owner, product).level
        acc = self._trust_accumulator(owner, product, level)
        return TrustAssessment(score=acc.value, factors=acc.factors())

    def calculate_intent_score(self, owner: OwnerProfile, product: Product) -> float:
        level = self.evaluate_price_perception(owner, product).level
        trust = self._trust_accumulator(owner, product, level).value
        return self._intent_accumulator(owner, product, level, trust).value

    def _trust_accumulator(
        self,
        owner: OwnerProfile,
        product: Product,
        price_level: PricePerceptionLevel,
    ) -> ScoreAccumulator:
        weights = self.config.trust
        acc = ScoreAccumulator(base=weights.base)

        acc.add_if(
            has_item(self.config.trusted_brands, product.brand),
            weights.brand_bonus,
            f"recognised brand {product.brand}",
        )
        for cert in product.certifications:
            acc.add(weights.certification_bonus, f"certified: {cert}")
        for point in self._matching_selling_points(owner, product):
            acc.add(weights.selling_point_match_bonus, f"selling point matches a concern: {point}")
        acc.add_if(
            product.protein_content > self.config.nutrients.protein_high,
            weights.high_protein_bonus,
            f"high protein content ({product.protein_content:g}%)",
        )
        if price_level == PricePerceptionLevel.REASONABLE:
            acc.add(weights.price_alignment_bonus, "price matches expectations")
        elif price_level in (PricePerceptionLevel.CHEAP, PricePerceptionLevel.TOO_EXPENSIVE):
            acc.add(-weights.price_misalignment_penalty, f"price feels {price_level.value}")
        return acc

    def _intent_accumulator(
        self,
        owner: OwnerProfile,
        product: Product,
        price_level: PricePerceptionLevel,
        trust_score: float,
    ) -> ScoreAccumulator:
        weights = self.config.intent
        acc = ScoreAccumulator(base=weights.base)

        acc.add(weights.price_deltas[price_level.value], f"price perceived as {price_level.value}")
        acc.add_if(
            owner.feeding_philosophy == FeedingPhilosophy.SCIENTIFIC
            and product.protein_content > self.config.nutrients.protein_high,
            weights.scientific_high_protein_bonus,
            "high protein suits a science-led feeder",
        )
        acc.add_if(
            owner.feeding_philosophy == FeedingPhilosophy.PREMIUM and bool(product.certifications),
            weights.premium_certification_bonus,
            "certifications reassure a premium feeder",
        )
        for concern in self._addressed_concerns(owner, product):
            acc.add(weights.concern_addressed_bonus, f"concern addressed: {concern}")
        acc.add(
            (trust_score - self.config.trust.base) * weights.trust_deviation_weight,
            "trust relative to baseline",
        )
        return acc

    def categorize_intent(self, intent_score: float) -> PurchaseIntent:
        level = band(
            intent_score,
            self.config.intent.high_threshold,
            self.config.intent.medium_threshold,
        )
        return PurchaseIntent(level.value)

    def decide(self, intent_score: float, trust_score: float, objection_count: int) -> FinalDecision:
        """
        Three-state decision over intent, trust and objection count.

        The buy band requires intent >= buy_min_score while not-buy is
        entered below not_buy_max_score; validation guarantees the first
        exceeds the second, and trust/objection failures only ever push
        towards not-buy, so both conditions cannot hold at once.
        """
        t = self.config.decision
        trust_ok = trust_score >= t.min_trust_for_buy
        objections_ok = objection_count <= t.max_concerns_for_buy

        if intent_score >= t.buy_min_score and trust_ok and objections_ok:
            return FinalDecision.BUY
        if intent_score < t.not_buy_max_score or not trust_ok or not objections_ok:
            return FinalDecision.NOT_BUY
        return FinalDecision.CONSIDER

    # Qualitative lists

    def initial_reaction(self, owner: OwnerProfile, product: Product) -> str:
        kw = self.config.keywords
        reactions = []
        philosophy = owner.feeding_philosophy

        if philosophy == FeedingPhilosophy.SCIENTIFIC:
            if product.protein_content > self.config.nutrients.protein_high:
                reactions.append(f"The {product.protein_content:g}% protein immediately stands out")
            if contains_any(product.main_ingredients, kw.fresh_ingredients):
                reactions.append("the ingredient list looks professional")
        elif philosophy == FeedingPhilosophy.BUDGET:
            too_expensive = self.config.price_bands["budget-driven"].too_expensive_above
            if too_expensive is not None and product.price > too_expensive:
                reactions.append(f"A price of {_format_price(product.price)} makes me hesitate")
        elif philosophy == FeedingPhilosophy.PREMIUM:
            if product.certifications:
                reactions.append(f"It carries {', '.join(product.certifications)}")
        elif philosophy == FeedingPhilosophy.FOLLOWER:
            if has_item(self.config.trusted_brands, product.brand):
                reactions.append(f"I have heard of {product.brand} before")

        if has_item(owner.concerns, kw.ingredient_safety_concern) and contains_any(
            product.selling_points, kw.free_from
        ):
            reactions.append("the selling points speak to what I care about")

        if not reactions:
            return "No strong first impression."
        text = ", ".join(reactions)
        return text[0].upper() + text[1:] + "."

    def identify_ingredient_concerns(self, owner: OwnerProfile, product: Product) -> List[str]:
        kw = self.config.keywords
        nutrients = self.config.nutrients
        concerns = []

        if has_item(owner.concerns, kw.ingredient_safety_concern):
            if (
                not has_item(product.certifications, kw.grain_free_certification)
                and product.carb_content > nutrients.carb_high
            ):
                concerns.append("grain content may be high")
            if (
                owner.feeding_philosophy == FeedingPhilosophy.SCIENTIFIC
                and not contains_any(product.additives, kw.probiotics)
            ):
                concerns.append("no probiotics listed")

        if has_item(owner.concerns, kw.formula_science_concern):
            if product.protein_content < nutrients.protein_low:
                concerns.append("protein content may be low")
            if product.fat_content > nutrients.fat_high:
                concerns.append("fat content is high")

        if (
            owner.feeding_philosophy == FeedingPhilosophy.PREMIUM
            and owner.income == IncomeLevel.HIGH_NET_WORTH
        ):
            concerns.append("needs confirmation of raw material sourcing")
            concerns.append("needs a third-party lab report")

        return concerns

    def extract_key_considerations(self, owner: OwnerProfile, product: Product) -> List[str]:
        kw = self.config.keywords
        considerations = []

        if owner.feeding_philosophy == FeedingPhilosophy.SCIENTIFIC:
            if product.protein_content > self.config.nutrients.protein_high:
                considerations.append(f"protein at {product.protein_content:g}% meets expectations")
            if contains_any(product.selling_points, kw.grain_free):
                considerations.append("grain-free formula is gentle on digestion")
            if contains_any(product.additives, kw.probiotics):
                considerations.append("probiotics may improve gut health")

        if has_item(owner.concerns, kw.ingredient_safety_concern) and product.certifications:
            considerations.append(f"certified: {', '.join(product.certifications)}")

        if owner.feeding_philosophy == FeedingPhilosophy.PREMIUM and product.main_ingredients:
            considerations.append(f"main ingredients: {', '.join(product.main_ingredients[:3])}")

        for concern in self._addressed_concerns(owner, product):
            considerations.append(f"addresses my {concern} concern")

        return considerations

    def identify_objections(
        self,
        owner: OwnerProfile,
        product: Product,
        price_level: Optional[PricePerceptionLevel] = None,
    ) -> List[str]:
        if price_level is None:
            price_level = self.evaluate_price_perception(owner, product).level
        kw = self.config.keywords
        objections = []

        if price_level in (PricePerceptionLevel.EXPENSIVE, PricePerceptionLevel.TOO_EXPENSIVE):
            objections.append("price too high")

        if owner.feeding_philosophy == FeedingPhilosophy.SCIENTIFIC:
            if product.target_species == TargetSpecies.CAT:
                objections.append("unsure whether the cat will like it")
            elif product.target_species == TargetSpecies.DOG:
                objections.append("unsure whether the dog will like it")
            else:
                objections.append("unsure whether the pet will like it")
        if owner.feeding_philosophy == FeedingPhilosophy.PREMIUM:
            objections.append("no third-party test report")

        if has_item(owner.concerns, kw.ingredient_safety_concern) and not contains_any(
            product.main_ingredients, kw.fresh_ingredients[:1]
        ):
            objections.append("main ingredients are not specific enough")

        if (
            owner.feeding_philosophy == FeedingPhilosophy.FOLLOWER
            and not has_item(self.config.trusted_brands, product.brand)
        ):
            objections.append("unfamiliar brand")

        return objections

    def identify_trigger_points(
        self,
        owner: OwnerProfile,
        price_level: PricePerceptionLevel,
    ) -> List[str]:
        kw = self.config.keywords
        triggers = []
        philosophy = owner.feeding_philosophy

        if has_item(owner.social_platforms, kw.review_platform):
            triggers.append(f"detailed ingredient review on {kw.review_platform}")
        if has_item(owner.social_platforms, kw.expert_platform):
            triggers.append(f"professional analysis on {kw.expert_platform}")

        triggers.append("trial pack to test palatability")

        if price_level in (PricePerceptionLevel.EXPENSIVE, PricePerceptionLevel.TOO_EXPENSIVE):
            triggers.append("promotional discount")
        if philosophy in (FeedingPhilosophy.PREMIUM, FeedingPhilosophy.SCIENTIFIC):
            triggers.append("veterinarian recommendation")
        if philosophy == FeedingPhilosophy.FOLLOWER:
            triggers.append("good results from a neighbour's pet")

        return triggers

    def predict_behavior(self, owner: OwnerProfile, intent: PurchaseIntent) -> str:
        kw = self.config.keywords
        behaviors = []

        if has_item(owner.social_platforms, kw.review_platform):
            behaviors.append(f"searches {kw.review_platform} for reviews")
        if has_item(owner.social_platforms, kw.expert_platform):
            behaviors.append(f"reads expert analysis on {kw.expert_platform}")
        if has_item(owner.social_platforms, kw.video_platform):
            behaviors.append(f"watches video reviews on {kw.video_platform}")

        if intent == PurchaseIntent.HIGH:
            behaviors.append("buys a trial pack if word of mouth is good")
        elif intent == PurchaseIntent.MEDIUM:
            behaviors.append("researches further before deciding")
        else:
            behaviors.append("most likely does not buy")

        text = ", ".join(behaviors)
        return text[0].upper() + text[1:]

    def identify_social_proof_needs(self, owner: OwnerProfile) -> List[str]:
        philosophy = owner.feeding_philosophy
        needs = []

        if philosophy == FeedingPhilosophy.SCIENTIFIC:
            needs.append("ingredient-focused reviews")
        if philosophy == FeedingPhilosophy.PREMIUM:
            needs.append("veterinarian endorsement")
            needs.append("clinical data")
        if philosophy == FeedingPhilosophy.FOLLOWER:
            needs.append("word of mouth from friends")
            needs.append("influencer recommendation")
        if philosophy == FeedingPhilosophy.BUDGET:
            needs.append("value-for-money comparisons")
        if philosophy in (FeedingPhilosophy.SCIENTIFIC, FeedingPhilosophy.PREMIUM):
            needs.append("feedback from owners of the same breed")

        return needs

    # Matching helpers

    def _matching_selling_points(self, owner: OwnerProfile, product: Product) -> List[str]:
        return [
            point for point in product.selling_points
            if any(lexical_match(concern, point) for concern in owner.concerns)
        ]

    def _addressed_concerns(self, owner: OwnerProfile, product: Product) -> List[str]:
        return [
            concern for concern in owner.concerns
            if any(lexical_match(concern, point) for point in product.selling_points)
        ]


def _format_price(price: float) -> str:
    return f"{clamp(price, 0, float('inf')):g}"
