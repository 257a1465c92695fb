"""
Scoring configuration for the owner, pet and interaction agents.

Every threshold and weight the agents use lives here as data, so a
calling application can tune them without touching scoring logic.
The configuration tree is a set of pydantic models: value types are
checked field by field, and each model's validator rejects overlapping
or inverted thresholds. All problems are reported together as a
ConfigurationError.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple
import json

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..errors import ConfigurationError


KNOWN_PHILOSOPHIES = ("scientific", "budget-driven", "premium", "follower")
PRICE_LEVELS = ("cheap", "reasonable", "expensive", "too-expensive")
SCENARIOS = ("surprise", "satisfaction", "disappointment", "rejection")


class _ConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)


class PriceBands(_ConfigModel):
    """
    Price breakpoints for one feeding philosophy.

    A price below ``cheap_below`` is cheap; above ``too_expensive_above``
    is too expensive; above ``expensive_above`` is expensive; anything
    else is reasonable. Either upper breakpoint may be None when the
    philosophy never reaches that band.
    """
    cheap_below: float
    expensive_above: Optional[float] = None
    too_expensive_above: Optional[float] = None

    def problems(self) -> List[str]:
        points = [("cheap_below", self.cheap_below)]
        if self.expensive_above is not None:
            points.append(("expensive_above", self.expensive_above))
        if self.too_expensive_above is not None:
            points.append(("too_expensive_above", self.too_expensive_above))

        problems = [f"{label} must be non-negative" for label, value in points if value < 0]
        for (label_a, a), (label_b, b) in zip(points, points[1:]):
            if a > b:
                problems.append(f"breakpoints overlap: {label_a} ({a}) > {label_b} ({b})")
        return problems


def _default_price_bands() -> Dict[str, PriceBands]:
    return {
        "scientific": PriceBands(cheap_below=150, expensive_above=300, too_expensive_above=400),
        "budget-driven": PriceBands(cheap_below=100, expensive_above=None, too_expensive_above=200),
        "premium": PriceBands(cheap_below=200, expensive_above=800, too_expensive_above=1200),
        "follower": PriceBands(cheap_below=150, expensive_above=300, too_expensive_above=None),
    }


class TrustWeights(_ConfigModel):
    """Base value and additive deltas for the owner trust score."""
    base: float = 50.0
    brand_bonus: float = 5.0
    certification_bonus: float = 10.0
    selling_point_match_bonus: float = 5.0
    high_protein_bonus: float = 5.0
    price_alignment_bonus: float = 10.0
    price_misalignment_penalty: float = 10.0


class IntentWeights(_ConfigModel):
    """Base value, deltas and category thresholds for purchase intent."""
    base: float = 50.0
    price_deltas: Dict[str, float] = Field(default_factory=lambda: {
        "cheap": 10.0,
        "reasonable": 20.0,
        "expensive": -10.0,
        "too-expensive": -30.0,
    })
    scientific_high_protein_bonus: float = 15.0
    premium_certification_bonus: float = 10.0
    concern_addressed_bonus: float = 5.0
    trust_deviation_weight: float = 0.3
    high_threshold: float = 70.0
    medium_threshold: float = 50.0

    @model_validator(mode="after")
    def _check_thresholds(self) -> "IntentWeights":
        problems = [
            f"price_deltas missing level '{level}'"
            for level in PRICE_LEVELS
            if level not in self.price_deltas
        ]
        if not 0 <= self.medium_threshold <= self.high_threshold <= 100:
            problems.append("thresholds must satisfy 0 <= medium_threshold <= high_threshold <= 100")
        return _raise_if(problems, self)


class DecisionThresholds(_ConfigModel):
    """Bands separating buy, consider and not-buy."""
    buy_min_score: float = 70.0
    not_buy_max_score: float = 40.0
    min_trust_for_buy: float = 60.0
    max_concerns_for_buy: int = 2

    @model_validator(mode="after")
    def _check_bands(self) -> "DecisionThresholds":
        problems = []
        if self.buy_min_score <= self.not_buy_max_score:
            problems.append(
                f"buy_min_score ({self.buy_min_score}) must exceed "
                f"not_buy_max_score ({self.not_buy_max_score})"
            )
        if not 0 <= self.min_trust_for_buy <= 100:
            problems.append("min_trust_for_buy must be within [0, 100]")
        if self.max_concerns_for_buy < 0:
            problems.append("max_concerns_for_buy must be non-negative")
        return _raise_if(problems, self)


class NutrientThresholds(_ConfigModel):
    """Macro-nutrient percentages the owner agent reacts to."""
    protein_high: float = 35.0
    protein_low: float = 30.0
    fat_high: float = 20.0
    carb_high: float = 30.0


class PetScoringWeights(_ConfigModel):
    """Weights for smell, taste, digestive risk and confidence of the pet agent."""
    # Smell attraction
    smell_base: float = 60.0
    smell_species_match_bonus: float = 15.0
    smell_high_protein_bonus: float = 10.0
    smell_fresh_ingredient_bonus: float = 10.0
    smell_greedy_bonus: float = 10.0
    smell_picky_penalty: float = 5.0
    smell_allergen_penalty: float = 10.0
    smell_senior_age: float = 7.0
    smell_senior_penalty: float = 5.0

    # Taste acceptance
    taste_base: float = 70.0
    taste_species_match_bonus: float = 10.0
    taste_greedy_bonus: float = 15.0
    taste_picky_penalty: float = 10.0
    taste_meat_bonus: float = 10.0
    taste_fat_threshold: float = 15.0
    taste_fat_bonus: float = 5.0
    taste_current_food_bonus: float = 5.0
    taste_sensitive_carb_penalty: float = 5.0
    taste_allergen_penalty: float = 20.0

    # Digestive risk
    risk_allergen: float = 30.0
    risk_sensitive_high_carb: float = 15.0
    risk_sensitive_high_fat: float = 10.0
    risk_sensitive_grain: float = 20.0
    risk_robust_relief: float = 10.0
    risk_sensitive_stomach: float = 15.0
    risk_senior_tag: float = 5.0
    risk_old_age: float = 10.0
    risk_old_age_penalty: float = 5.0
    risk_probiotic_relief: float = 10.0
    risk_hypoallergenic_relief: float = 10.0
    high_carb: float = 35.0
    sensitive_carb: float = 30.0
    high_fat: float = 18.0
    risk_high_threshold: float = 50.0
    risk_medium_threshold: float = 25.0
    allergen_on_sensitive_is_high: bool = True

    # Preference and confidence
    like_threshold: float = 80.0
    neutral_threshold: float = 60.0
    confidence_base: float = 70.0
    confidence_species_match_bonus: float = 15.0
    confidence_low_risk_bonus: float = 15.0
    confidence_high_risk_penalty: float = 20.0
    confidence_like_bonus: float = 10.0
    confidence_dislike_penalty: float = 15.0
    confidence_health_bonus: float = 10.0

    # Age from which joint support counts as a positive factor
    joint_care_age: float = 5.0

    # Narrative cut-offs for behavior, suitability and feeding scenes
    eager_smell: float = 75.0
    curious_smell: float = 60.0
    eager_taste: float = 80.0
    settled_taste: float = 65.0
    picky_finish_taste: float = 70.0
    excellent_palatability: float = 75.0
    good_palatability: float = 60.0

    @model_validator(mode="after")
    def _check_thresholds(self) -> "PetScoringWeights":
        problems = []
        if not 0 <= self.risk_medium_threshold <= self.risk_high_threshold <= 100:
            problems.append(
                "risk thresholds must satisfy 0 <= risk_medium_threshold <= risk_high_threshold <= 100"
            )
        if not 0 <= self.neutral_threshold <= self.like_threshold <= 100:
            problems.append(
                "preference thresholds must satisfy 0 <= neutral_threshold <= like_threshold <= 100"
            )
        if not 0 <= self.curious_smell <= self.eager_smell <= 100:
            problems.append("smell cut-offs must satisfy 0 <= curious_smell <= eager_smell <= 100")
        if not 0 <= self.settled_taste <= self.eager_taste <= 100:
            problems.append("taste cut-offs must satisfy 0 <= settled_taste <= eager_taste <= 100")
        if not 0 <= self.good_palatability <= self.excellent_palatability <= 100:
            problems.append(
                "palatability cut-offs must satisfy 0 <= good_palatability <= excellent_palatability <= 100"
            )
        return _raise_if(problems, self)


class ScenarioThresholds(_ConfigModel):
    """Boundaries the interaction analyst uses to classify an encounter."""
    acceptance_high: float = 75.0
    acceptance_medium: float = 55.0

    @model_validator(mode="after")
    def _check_thresholds(self) -> "ScenarioThresholds":
        problems = []
        if not 0 <= self.acceptance_medium <= self.acceptance_high <= 100:
            problems.append("thresholds must satisfy 0 <= acceptance_medium <= acceptance_high <= 100")
        return _raise_if(problems, self)


class LoyaltyBands(_ConfigModel):
    """
    Repurchase, NPS and churn banding per scenario.

    Each scenario maps to a (low, high) range; the pair's own scores
    position the result inside that range.
    """
    repurchase: Dict[str, Tuple[float, float]] = Field(default_factory=lambda: {
        "surprise": (65.0, 85.0),
        "satisfaction": (55.0, 80.0),
        "disappointment": (30.0, 55.0),
        "rejection": (5.0, 25.0),
    })
    nps: Dict[str, Tuple[float, float]] = Field(default_factory=lambda: {
        "surprise": (40.0, 70.0),
        "satisfaction": (15.0, 50.0),
        "disappointment": (-20.0, 15.0),
        "rejection": (-60.0, -10.0),
    })
    churn_low_min_repurchase: float = 70.0
    churn_medium_min_repurchase: float = 40.0

    # Combined dual-perspective verdict
    match_intent_weight: float = 0.5
    match_acceptance_weight: float = 0.5
    match_medium_risk_penalty: float = 10.0
    match_high_risk_penalty: float = 30.0
    strongly_recommend_min: float = 75.0
    recommend_min: float = 60.0
    neutral_min: float = 40.0

    @model_validator(mode="after")
    def _check_bands(self) -> "LoyaltyBands":
        problems = []
        for table_name, table, lower, upper in (
            ("repurchase", self.repurchase, 0, 100),
            ("nps", self.nps, -100, 100),
        ):
            for scenario in SCENARIOS:
                if scenario not in table:
                    problems.append(f"{table_name} missing scenario '{scenario}'")
                    continue
                low, high = table[scenario]
                if not lower <= low <= high <= upper:
                    problems.append(
                        f"{table_name}['{scenario}'] must satisfy {lower} <= low <= high <= {upper}"
                    )
        if not 0 <= self.churn_medium_min_repurchase <= self.churn_low_min_repurchase <= 100:
            problems.append(
                "churn bands must satisfy 0 <= churn_medium_min_repurchase <= churn_low_min_repurchase <= 100"
            )
        if not 0 <= self.neutral_min <= self.recommend_min <= self.strongly_recommend_min <= 100:
            problems.append(
                "recommendation bands must satisfy 0 <= neutral_min <= recommend_min <= strongly_recommend_min <= 100"
            )
        if self.match_intent_weight < 0 or self.match_acceptance_weight < 0:
            problems.append("match weights must be non-negative")
        elif self.match_intent_weight + self.match_acceptance_weight <= 0:
            problems.append("match weights must not both be zero")
        return _raise_if(problems, self)


class KeywordLists(_ConfigModel):
    """Vocabulary used by lexical attribute matching."""
    fresh_ingredients: List[str] = Field(default_factory=lambda: ["fresh", "salmon"])
    meat_ingredients: List[str] = Field(default_factory=lambda: [
        "fresh", "meat", "chicken", "beef", "duck", "lamb", "turkey", "fish", "salmon",
    ])
    grains: List[str] = Field(default_factory=lambda: ["wheat", "corn", "rice"])
    probiotics: List[str] = Field(default_factory=lambda: ["probiotics", "probiotic"])
    omega3: List[str] = Field(default_factory=lambda: ["omega-3", "fish oil"])
    joint_care: List[str] = Field(default_factory=lambda: ["glucosamine", "chondroitin"])
    grain_free: List[str] = Field(default_factory=lambda: ["grain-free"])
    hypoallergenic: List[str] = Field(default_factory=lambda: ["hypoallergenic", "low-allergen"])
    small_kibble: List[str] = Field(default_factory=lambda: ["small kibble"])
    free_from: List[str] = Field(default_factory=lambda: ["free", "no artificial", "no added"])
    grain_free_certification: str = "grain-free certified"
    ingredient_safety_concern: str = "ingredient-safety"
    formula_science_concern: str = "formula-scientific-basis"
    review_platform: str = "xiaohongshu"
    expert_platform: str = "zhihu"
    video_platform: str = "douyin"


class ScoringConfig(_ConfigModel):
    """Complete, validated set of thresholds and weights for one run."""
    price_bands: Dict[str, PriceBands] = Field(default_factory=_default_price_bands)
    price_scores: Dict[str, float] = Field(default_factory=lambda: {
        "cheap": 80.0,
        "reasonable": 60.0,
        "expensive": 40.0,
        "too-expensive": 20.0,
    })
    high_net_worth_uses_premium_bands: bool = True
    trust: TrustWeights = Field(default_factory=TrustWeights)
    intent: IntentWeights = Field(default_factory=IntentWeights)
    decision: DecisionThresholds = Field(default_factory=DecisionThresholds)
    nutrients: NutrientThresholds = Field(default_factory=NutrientThresholds)
    pet: PetScoringWeights = Field(default_factory=PetScoringWeights)
    scenario: ScenarioThresholds = Field(default_factory=ScenarioThresholds)
    loyalty: LoyaltyBands = Field(default_factory=LoyaltyBands)
    keywords: KeywordLists = Field(default_factory=KeywordLists)
    trusted_brands: List[str] = Field(default_factory=lambda: ["PetChoice"])

    @model_validator(mode="after")
    def _check_tables(self) -> "ScoringConfig":
        problems = []
        missing = [p for p in KNOWN_PHILOSOPHIES if p not in self.price_bands]
        if missing:
            problems.append(f"price_bands missing philosophies: {', '.join(missing)}")
        for name, bands in self.price_bands.items():
            if name not in KNOWN_PHILOSOPHIES:
                problems.append(f"price_bands has unknown philosophy '{name}'")
            problems.extend(f"price_bands['{name}'] {p}" for p in bands.problems())

        for level in PRICE_LEVELS:
            if level not in self.price_scores:
                problems.append(f"price_scores missing level '{level}'")
            elif not 0 <= self.price_scores[level] <= 100:
                problems.append(f"price_scores['{level}'] must be within [0, 100]")
        return _raise_if(problems, self)

    def problems(self) -> List[str]:
        """
        Return every validation problem; an empty list means valid.

        The current values are validated afresh, so problems introduced
        by assigning to fields after construction are found too.
        """
        try:
            type(self).model_validate(self.model_dump(warnings=False))
        except ValidationError as e:
            return _error_problems(e)
        return []

    def ensure_valid(self) -> "ScoringConfig":
        """Raise ConfigurationError if the configuration is not usable."""
        problems = self.problems()
        if problems:
            logger.error(f"config_invalid | problems={len(problems)} | first={problems[0]}")
            raise ConfigurationError(problems)
        return self

    def bands_for(self, philosophy: str, high_net_worth: bool = False) -> PriceBands:
        """Price bands for an owner, honouring the high-net-worth override."""
        if high_net_worth and self.high_net_worth_uses_premium_bands and philosophy != "budget-driven":
            return self.price_bands["premium"]
        return self.price_bands[philosophy]

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScoringConfig":
        """
        Build a configuration by overlaying ``data`` on the defaults.

        Keys may be partial at every level, including inside the price
        band, price table and loyalty tables. Unknown keys, values of
        the wrong type and inconsistent thresholds are reported together
        as a ConfigurationError.
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(["configuration must be an object"])
        try:
            return cls.model_validate(_merge(cls().model_dump(), data))
        except ValidationError as e:
            raise ConfigurationError(_error_problems(e)) from e


def load_config(path: str) -> ScoringConfig:
    """Load and validate a scoring configuration from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError([f"{path}: not valid JSON ({e})"]) from e
    if not isinstance(data, dict):
        raise ConfigurationError([f"{path}: top level must be an object"])
    config = ScoringConfig.from_dict(data)
    logger.info(f"config_loaded | path={path}")
    return config


def _raise_if(problems: List[str], model: Any) -> Any:
    if problems:
        raise ConfigurationError(problems)
    return model


def _error_problems(error: ValidationError) -> List[str]:
    """Flatten a ValidationError into 'path: message' lines."""
    problems = []
    for detail in error.errors():
        where = ".".join(str(part) for part in detail["loc"])
        cause = detail.get("ctx", {}).get("error")
        if isinstance(cause, ConfigurationError):
            messages = cause.problems
        else:
            messages = [detail["msg"]]
        problems.extend(f"{where}: {message}" if where else message for message in messages)
    return problems


def _merge(base: Dict[str, Any], overlay: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged
