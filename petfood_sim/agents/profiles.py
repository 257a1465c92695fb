"""
Owner, pet and product records consumed by the agents.

Records are immutable pydantic models supplied by the persona and
product catalog. They can be built directly or from the mapping form
used by the surrounding application (camelCase or snake_case keys);
the mapping path reports missing or mistyped fields as
MalformedRecordError.
"""

from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Type

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from ..errors import MalformedRecordError


class FeedingPhilosophy(Enum):
    """How an owner approaches feeding; drives price and trust scoring."""
    SCIENTIFIC = "scientific"
    BUDGET = "budget-driven"
    PREMIUM = "premium"
    FOLLOWER = "follower"


class IncomeLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    HIGH_NET_WORTH = "high-net-worth"


class Species(Enum):
    CAT = "cat"
    DOG = "dog"


class TargetSpecies(Enum):
    CAT = "cat"
    DOG = "dog"
    UNIVERSAL = "universal"


class DigestiveSystem(Enum):
    SENSITIVE = "sensitive"
    NORMAL = "normal"
    ROBUST = "robust"


class EatingHabit(Enum):
    PICKY = "picky"
    NORMAL = "normal"
    GREEDY = "greedy"


class ActivityLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class _Record(BaseModel):
    """Shared parsing rules: non-empty id, null means absent, lenient enum spelling."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        allow_inf_nan=False,
        coerce_numbers_to_str=True,
    )

    kind: ClassVar[str] = "record"

    id: str

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("id must not be empty")
        return value

    @field_validator("*", mode="before")
    @classmethod
    def _enum_by_value_or_name(cls, value: Any, info: ValidationInfo) -> Any:
        annotation = cls.model_fields[info.field_name].annotation
        if isinstance(annotation, type) and issubclass(annotation, Enum) and isinstance(value, str):
            return _enum_member(annotation, value)
        return value

    @classmethod
    def from_dict(cls, data: Any):
        """Parse a mapping, raising MalformedRecordError on bad input."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise _malformed(cls.kind, data, e) from e

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class OwnerProfile(_Record):
    """
    Demographics and purchase psychology of a pet owner.

    ``concerns`` are the topics the owner checks a product against
    (e.g. ingredient-safety); ``social_platforms`` decide which
    social-proof triggers apply.
    """
    kind: ClassVar[str] = "owner"

    name: str = ""
    age: int = 30
    gender: str = ""
    city: str = ""
    occupation: str = ""
    income: IncomeLevel = IncomeLevel.MEDIUM
    feeding_philosophy: FeedingPhilosophy = Field(
        validation_alias=AliasChoices("feeding_philosophy", "feedingPhilosophy"),
    )
    concerns: List[str] = Field(default_factory=list)
    social_platforms: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("social_platforms", "socialPlatforms", "socialPlatform"),
    )
    purchase_channels: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("purchase_channels", "purchaseChannels", "purchaseChannel"),
    )
    price_range: str = Field(default="", validation_alias=AliasChoices("price_range", "priceRange"))


class PetProfile(_Record):
    """Physiology and eating behavior of a pet."""
    kind: ClassVar[str] = "pet"

    name: str = ""
    species: Species
    breed: str = ""
    age: float = 3
    weight: float = 5.0
    health_status: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("health_status", "healthStatus"),
    )
    allergies: List[str] = Field(default_factory=list)
    activity_level: ActivityLevel = Field(
        default=ActivityLevel.MEDIUM,
        validation_alias=AliasChoices("activity_level", "activityLevel"),
    )
    digestive_system: DigestiveSystem = Field(
        default=DigestiveSystem.NORMAL,
        validation_alias=AliasChoices("digestive_system", "digestiveSystem"),
    )
    eating_habit: EatingHabit = Field(
        default=EatingHabit.NORMAL,
        validation_alias=AliasChoices("eating_habit", "eatingHabit"),
    )
    current_food: str = Field(default="", validation_alias=AliasChoices("current_food", "currentFood"))


class Product(_Record):
    """A pet food product under test. Shared by every pair in a run."""
    kind: ClassVar[str] = "product"

    name: str = ""
    brand: str = ""
    category: str = ""
    price: float
    weight: str = ""
    target_species: TargetSpecies = Field(
        default=TargetSpecies.UNIVERSAL,
        validation_alias=AliasChoices("target_species", "targetSpecies", "targetPet"),
    )
    main_ingredients: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("main_ingredients", "mainIngredients"),
    )
    protein_content: float = Field(validation_alias=AliasChoices("protein_content", "proteinContent"))
    fat_content: float = Field(validation_alias=AliasChoices("fat_content", "fatContent"))
    carb_content: float = Field(validation_alias=AliasChoices("carb_content", "carbContent"))
    additives: List[str] = Field(default_factory=list)
    selling_points: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("selling_points", "sellingPoints"),
    )
    packaging: str = ""
    certifications: List[str] = Field(default_factory=list)


class PersonaPair(_Record):
    """One household: an owner and their pet under a shared identifier."""
    kind: ClassVar[str] = "persona pair"

    owner: OwnerProfile
    pet: PetProfile
    relationship: str = ""
    feeding_scenario: str = Field(
        default="",
        validation_alias=AliasChoices("feeding_scenario", "feedingScenario"),
    )
    emotional_bond: str = Field(
        default="",
        validation_alias=AliasChoices("emotional_bond", "emotionalBond"),
    )


def _enum_member(enum_type: Type[Enum], text: str) -> Any:
    """Accept an enum by value or member name, ignoring case and separators."""
    cleaned = text.strip()
    for member in enum_type:
        if member.value == cleaned.lower():
            return member
    by_name = cleaned.upper().replace("-", "_")
    if by_name in enum_type.__members__:
        return enum_type[by_name]
    return text


def _malformed(kind: str, data: Any, error: ValidationError) -> MalformedRecordError:
    record_id: Optional[str] = None
    if isinstance(data, Mapping) and data.get("id") not in (None, ""):
        record_id = str(data["id"])

    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or None
    where = f"{kind} record {record_id}" if record_id else f"{kind} record"
    message = f"{where}: field '{field}' {first['msg']}" if field else f"{where}: {first['msg']}"
    if error.error_count() > 1:
        message += f" (+{error.error_count() - 1} more)"
    return MalformedRecordError(message, record_id, field)
