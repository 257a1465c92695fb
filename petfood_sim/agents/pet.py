"""
Pet agent: how the animal itself responds to a product.

Mirrors the owner agent on the physiological side: smell attraction
and taste acceptance on a 0-100 scale, a low/medium/high digestive
risk band, and deterministic positive and risk factor lists. The
shared scale is what lets the interaction analyst compare the two.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..scoring.config import ScoringConfig
from ..scoring.primitives import (
    Level,
    ScoreAccumulator,
    band,
    contains_any,
    first_match,
    has_item,
    lexical_match,
    normalize_term,
)
from .profiles import (
    ActivityLevel,
    DigestiveSystem,
    EatingHabit,
    PetProfile,
    Product,
    Species,
)


SENSITIVE_STOMACH = "sensitive-stomach"
SENIOR = "senior"
DENTAL_ISSUES = "dental-issues"
JOINT_ISSUES = "joint-issues"
TEAR_STAINS = "tear-stains"
OVERWEIGHT = "overweight"


class DigestiveRisk(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def level(self) -> Level:
        return Level(self.value)


class PetPreference(Enum):
    LIKE = "like"
    NEUTRAL = "neutral"
    DISLIKE = "dislike"


@dataclass
class PetSimulationResult:
    """Everything the pet agent concludes about one product."""
    persona_id: str
    product_id: str
    smell_attraction: float
    taste_acceptance: float
    digestive_risk: DigestiveRisk
    expected_behavior: str
    physiological_response: str
    long_term_suitability: str
    positive_factors: List[str] = field(default_factory=list)
    risk_factors: List[str] = field(default_factory=list)
    preference: PetPreference = PetPreference.NEUTRAL
    confidence: float = 70.0

    @property
    def acceptance_score(self) -> float:
        """Average of smell attraction and taste acceptance."""
        return (self.smell_attraction + self.taste_acceptance) / 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "persona_id": self.persona_id,
            "product_id": self.product_id,
            "smell_attraction": self.smell_attraction,
            "taste_acceptance": self.taste_acceptance,
            "digestive_risk": self.digestive_risk.value,
            "expected_behavior": self.expected_behavior,
            "physiological_response": self.physiological_response,
            "long_term_suitability": self.long_term_suitability,
            "positive_factors": list(self.positive_factors),
            "risk_factors": list(self.risk_factors),
            "preference": self.preference.value,
            "confidence": self.confidence,
        }


class PetAgent:
    """Rule-based model of a pet's physiological and behavioral response."""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = (config or ScoringConfig()).ensure_valid()

    def simulate(self, pet: PetProfile, product: Product) -> PetSimulationResult:
        """Score one pet against one product."""
        smell = self.calculate_smell_attraction(pet, product)
        taste = self.calculate_taste_acceptance(pet, product)
        risk = self.assess_digestive_risk(pet, product)
        preference = self.preference(taste)

        return PetSimulationResult(
            persona_id=pet.id,
            product_id=product.id,
            smell_attraction=smell,
            taste_acceptance=taste,
            digestive_risk=risk,
            expected_behavior=self.predict_behavior(pet, smell, taste),
            physiological_response=self.predict_physiological_response(pet, product, risk),
            long_term_suitability=self.assess_long_term_suitability(pet, product, risk, smell, taste),
            positive_factors=self.identify_positive_factors(pet, product),
            risk_factors=self.identify_risk_factors(pet, product),
            preference=preference,
            confidence=self.calculate_confidence(pet, product, risk, preference),
        )

    # Scores

    def calculate_smell_attraction(self, pet: PetProfile, product: Product) -> float:
        w = self.config.pet
        kw = self.config.keywords
        acc = ScoreAccumulator(base=w.smell_base)

        acc.add_if(_species_match(pet, product), w.smell_species_match_bonus, "species match")
        acc.add_if(
            product.protein_content > self.config.nutrients.protein_high,
            w.smell_high_protein_bonus,
            "high protein",
        )
        acc.add_if(
            contains_any(product.main_ingredients, kw.fresh_ingredients),
            w.smell_fresh_ingredient_bonus,
            "fresh ingredients",
        )
        if pet.eating_habit == EatingHabit.GREEDY:
            acc.add(w.smell_greedy_bonus, "greedy eater")
        elif pet.eating_habit == EatingHabit.PICKY:
            acc.add(-w.smell_picky_penalty, "picky eater")
        acc.add_if(pet.age > w.smell_senior_age, -w.smell_senior_penalty, "reduced sense of smell")
        acc.add_if(self.find_allergen(pet, product) is not None, -w.smell_allergen_penalty, "allergen")
        return acc.value

    def calculate_taste_acceptance(self, pet: PetProfile, product: Product) -> float:
        w = self.config.pet
        kw = self.config.keywords
        acc = ScoreAccumulator(base=w.taste_base)

        acc.add_if(_species_match(pet, product), w.taste_species_match_bonus, "species match")
        if pet.eating_habit == EatingHabit.GREEDY:
            acc.add(w.taste_greedy_bonus, "greedy eater")
        elif pet.eating_habit == EatingHabit.PICKY:
            acc.add(-w.taste_picky_penalty, "picky eater")
        acc.add_if(
            contains_any(product.main_ingredients, kw.meat_ingredients),
            w.taste_meat_bonus,
            "meat-based",
        )
        acc.add_if(product.fat_content > w.taste_fat_threshold, w.taste_fat_bonus, "rich in fat")
        acc.add_if(
            self._familiar_ingredient(pet, product),
            w.taste_current_food_bonus,
            "familiar flavor",
        )
        acc.add_if(
            pet.digestive_system == DigestiveSystem.SENSITIVE and product.carb_content > w.sensitive_carb,
            -w.taste_sensitive_carb_penalty,
            "carb-heavy for a sensitive gut",
        )
        acc.add_if(self.find_allergen(pet, product) is not None, -w.taste_allergen_penalty, "allergen")
        return acc.value

    def digestive_risk_score(self, pet: PetProfile, product: Product) -> float:
        """Numeric digestive risk before banding, in [0, 100]."""
        w = self.config.pet
        kw = self.config.keywords
        acc = ScoreAccumulator(base=0.0)

        acc.add_if(self.find_allergen(pet, product) is not None, w.risk_allergen, "allergen")

        if pet.digestive_system == DigestiveSystem.SENSITIVE:
            acc.add_if(product.carb_content > w.high_carb, w.risk_sensitive_high_carb, "high carb")
            acc.add_if(product.fat_content > w.high_fat, w.risk_sensitive_high_fat, "high fat")
            acc.add_if(self._contains_grain(product), w.risk_sensitive_grain, "grains")
        elif pet.digestive_system == DigestiveSystem.ROBUST:
            # Relief cannot take the running score below zero
            acc.add(-min(w.risk_robust_relief, max(0.0, acc.raw)), "robust digestion")

        if has_item(pet.health_status, SENSITIVE_STOMACH):
            acc.add_if(
                product.carb_content > w.sensitive_carb or product.fat_content > w.high_fat,
                w.risk_sensitive_stomach,
                "sensitive stomach",
            )
        acc.add_if(has_item(pet.health_status, SENIOR), w.risk_senior_tag, "senior")
        acc.add_if(pet.age > w.risk_old_age, w.risk_old_age_penalty, "old age")

        acc.add_if(contains_any(product.additives, kw.probiotics), -w.risk_probiotic_relief, "probiotics")
        acc.add_if(
            contains_any(product.selling_points, kw.hypoallergenic),
            -w.risk_hypoallergenic_relief,
            "hypoallergenic",
        )
        return acc.value

    def assess_digestive_risk(self, pet: PetProfile, product: Product) -> DigestiveRisk:
        w = self.config.pet
        if (
            w.allergen_on_sensitive_is_high
            and pet.digestive_system == DigestiveSystem.SENSITIVE
            and self.find_allergen(pet, product) is not None
        ):
            return DigestiveRisk.HIGH
        level = band(
            self.digestive_risk_score(pet, product),
            w.risk_high_threshold,
            w.risk_medium_threshold,
        )
        return DigestiveRisk(level.value)

    def preference(self, taste: float) -> PetPreference:
        w = self.config.pet
        level = band(taste, w.like_threshold, w.neutral_threshold)
        if level == Level.HIGH:
            return PetPreference.LIKE
        if level == Level.MEDIUM:
            return PetPreference.NEUTRAL
        return PetPreference.DISLIKE

    def calculate_confidence(
        self,
        pet: PetProfile,
        product: Product,
        risk: DigestiveRisk,
        preference: PetPreference,
    ) -> float:
        w = self.config.pet
        kw = self.config.keywords
        acc = ScoreAccumulator(base=w.confidence_base)
        acc.add_if(_species_match(pet, product), w.confidence_species_match_bonus)
        acc.add_if(risk == DigestiveRisk.LOW, w.confidence_low_risk_bonus)
        acc.add_if(risk == DigestiveRisk.HIGH, -w.confidence_high_risk_penalty)
        acc.add_if(preference == PetPreference.LIKE, w.confidence_like_bonus)
        acc.add_if(preference == PetPreference.DISLIKE, -w.confidence_dislike_penalty)
        acc.add_if(
            has_item(pet.health_status, JOINT_ISSUES) and contains_any(product.additives, kw.joint_care),
            w.confidence_health_bonus,
        )
        return acc.value

    # Narrative fields

    def predict_behavior(self, pet: PetProfile, smell: float, taste: float) -> str:
        w = self.config.pet
        behaviors = []

        if smell > w.eager_smell:
            behaviors.append("runs over excitedly when the bag opens")
        elif smell > w.curious_smell:
            behaviors.append("comes over for a sniff")
        else:
            behaviors.append("may hesitate at first")

        if pet.eating_habit == EatingHabit.GREEDY:
            behaviors.append("wolfs it down")
        elif pet.eating_habit == EatingHabit.PICKY:
            if taste > w.picky_finish_taste:
                behaviors.append("nibbles cautiously, then finishes slowly")
            else:
                behaviors.append("picks through the bowl")
        else:
            behaviors.append("eats normally")

        if has_item(pet.health_status, DENTAL_ISSUES):
            behaviors.append("though the kibble may need soaking")

        if pet.activity_level == ActivityLevel.LOW:
            behaviors.append("rests after the meal")
        elif pet.activity_level == ActivityLevel.HIGH:
            behaviors.append("may beg for more afterwards")

        text = ", ".join(behaviors)
        return text[0].upper() + text[1:]

    def predict_physiological_response(
        self,
        pet: PetProfile,
        product: Product,
        risk: DigestiveRisk,
    ) -> str:
        kw = self.config.keywords
        responses = []

        if risk == DigestiveRisk.LOW:
            if pet.species == Species.CAT and product.protein_content > self.config.nutrients.protein_high:
                responses.append("the high-protein formula suits a cat's nature")
            if pet.digestive_system == DigestiveSystem.SENSITIVE and contains_any(
                product.selling_points, kw.grain_free
            ):
                responses.append("the grain-free formula lightens the digestive load")
            if contains_any(product.additives, kw.probiotics):
                responses.append("probiotics support the gut flora")
            responses.append("stools expected to stay well formed")
        elif risk == DigestiveRisk.MEDIUM:
            responses.append("stools need watching")
            if pet.digestive_system == DigestiveSystem.SENSITIVE:
                responses.append("switch food gradually over 7-10 days")
        else:
            responses.append("may cause digestive upset")
            responses.append("switch cautiously or consult a vet")

        if has_item(pet.health_status, SENSITIVE_STOMACH) and risk == DigestiveRisk.LOW:
            responses.append("gentle on a sensitive stomach")
        if has_item(pet.health_status, JOINT_ISSUES) and contains_any(product.additives, kw.joint_care):
            responses.append("joint support needs long-term feeding to show results")
        if has_item(pet.health_status, TEAR_STAINS) and contains_any(product.additives, kw.omega3):
            responses.append("omega-3 may reduce tear stains")
        if pet.digestive_system == DigestiveSystem.ROBUST:
            responses.append("a robust digestive system adapts well")

        text = ", ".join(responses)
        return text[0].upper() + text[1:]

    def assess_long_term_suitability(
        self,
        pet: PetProfile,
        product: Product,
        risk: DigestiveRisk,
        smell: float,
        taste: float,
    ) -> str:
        if risk == DigestiveRisk.HIGH:
            return "Not recommended for long-term feeding; health risk present."
        if risk == DigestiveRisk.MEDIUM:
            return "Suitable long term with close monitoring; portions may need adjusting."

        kw = self.config.keywords
        w = self.config.pet
        assessments = []
        if smell > w.excellent_palatability and taste > w.excellent_palatability:
            assessments.append("excellent palatability")
        elif smell > w.good_palatability and taste > w.good_palatability:
            assessments.append("good palatability")

        if product.protein_content > self.config.nutrients.protein_high:
            if pet.species == Species.CAT:
                assessments.append("high protein meets a cat's physiological needs")
            elif pet.activity_level == ActivityLevel.HIGH:
                assessments.append("high protein fuels an active dog")

        if has_item(pet.health_status, JOINT_ISSUES) and contains_any(product.additives, kw.joint_care):
            assessments.append("joint care suits an ageing pet")
        if has_item(pet.health_status, OVERWEIGHT) and product.fat_content > self.config.pet.high_fat:
            assessments.append("but weight needs managing")

        if not assessments:
            return "Suitable for long-term feeding; balanced nutrition."
        text = ", ".join(assessments)
        return text[0].upper() + text[1:] + "; suitable for long-term feeding."

    def identify_risk_factors(self, pet: PetProfile, product: Product) -> List[str]:
        w = self.config.pet
        kw = self.config.keywords
        risks = []

        allergen = self.find_allergen(pet, product)
        if allergen is not None:
            risks.append(f"contains allergen: {allergen}")

        if pet.digestive_system == DigestiveSystem.SENSITIVE:
            if product.carb_content > w.sensitive_carb:
                risks.append("high carbohydrate content")
            if product.fat_content > w.high_fat:
                risks.append("high fat content")
            if self._contains_grain(product):
                risks.append("contains grains")

        if has_item(pet.health_status, OVERWEIGHT) and product.fat_content > w.high_fat:
            risks.append("fat content works against weight loss")
        if has_item(pet.health_status, DENTAL_ISSUES) and not contains_any(
            product.selling_points, kw.small_kibble
        ):
            risks.append("kibble may be hard to chew")
        if pet.digestive_system == DigestiveSystem.SENSITIVE or pet.age > w.smell_senior_age:
            risks.append("needs a 7-10 day transition")
        if pet.eating_habit == EatingHabit.PICKY and product.protein_content < self.config.nutrients.protein_low:
            risks.append("protein may be too low to tempt a picky eater")

        return risks

    def identify_positive_factors(self, pet: PetProfile, product: Product) -> List[str]:
        kw = self.config.keywords
        positives = []

        if _species_match(pet, product):
            positives.append("formulated for this species")

        if product.protein_content > self.config.nutrients.protein_high:
            if pet.species == Species.CAT:
                positives.append("high animal protein suits a cat's nature")
            elif pet.activity_level == ActivityLevel.HIGH:
                positives.append("high protein meets active needs")

        if contains_any(product.selling_points, kw.grain_free) and (
            pet.digestive_system == DigestiveSystem.SENSITIVE
            or has_item(pet.health_status, SENSITIVE_STOMACH)
        ):
            positives.append("grain-free eases digestion")

        if contains_any(product.additives, kw.probiotics):
            positives.append("probiotics support gut health")
        if contains_any(product.additives, kw.omega3):
            positives.append("omega-3 for skin and coat")
        if contains_any(product.additives, kw.joint_care) and (
            has_item(pet.health_status, JOINT_ISSUES) or pet.age > self.config.pet.joint_care_age
        ):
            positives.append("joint care ingredients")
        if contains_any(product.main_ingredients, kw.fresh_ingredients[:1]):
            positives.append("fresh meat ingredients")
        if pet.digestive_system == DigestiveSystem.ROBUST:
            positives.append("robust digestion handles most formulas")
        if product.certifications:
            positives.append(f"certified: {', '.join(product.certifications)}")

        return positives

    # Matching helpers

    def find_allergen(self, pet: PetProfile, product: Product) -> Optional[str]:
        """The first main ingredient that contains one of the pet's allergies."""
        match = first_match(product.main_ingredients, pet.allergies)
        return match[0] if match else None

    def _contains_grain(self, product: Product) -> bool:
        grains = self.config.keywords.grains
        return any(has_item(grains, ingredient) for ingredient in product.main_ingredients)

    def _familiar_ingredient(self, pet: PetProfile, product: Product) -> bool:
        if not normalize_term(pet.current_food):
            return False
        return any(
            lexical_match(ingredient, pet.current_food)
            for ingredient in product.main_ingredients
        )


def _species_match(pet: PetProfile, product: Product) -> bool:
    return product.target_species.value == pet.species.value
