"""
Feeding scripts for qualitative playback of a simulated encounter.

Turns one pair's scored results into a short three-scene script:
opening the bag, the meal itself and the aftermath. Every line is a
template keyed on scores and the scenario, so the same inputs always
produce the same script.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..agents.owner import OwnerSimulationResult
from ..agents.pet import PetSimulationResult
from ..agents.profiles import EatingHabit, PersonaPair
from ..scoring.config import ScoringConfig
from .interaction import InteractionAnalysis, Scenario


_MOOD = {
    Scenario.SURPRISE: "pleasantly surprised",
    Scenario.SATISFACTION: "warm and content",
    Scenario.DISAPPOINTMENT: "let down",
    Scenario.REJECTION: "worried",
}

_MARKETING = {
    Scenario.SURPRISE: "Use 'even my sceptical owner was won over' stories with real feeding videos",
    Scenario.SATISFACTION: "Feature 'picky eaters love it too' with user-submitted feeding clips",
    Scenario.DISAPPOINTMENT: "Publish honest transition guides so expectations match the first weeks",
    Scenario.REJECTION: "Target this segment with a gentler formula rather than this product",
}


@dataclass
class FeedingScene:
    action: str
    pet_reaction: str
    owner_emotion: str
    dialogue: str = ""


@dataclass
class FeedingScript:
    persona_id: str
    product_id: str
    scenes: List[FeedingScene] = field(default_factory=list)
    overall_mood: str = ""
    marketing_insight: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "persona_id": self.persona_id,
            "product_id": self.product_id,
            "scenes": [
                {
                    "action": s.action,
                    "pet_reaction": s.pet_reaction,
                    "owner_emotion": s.owner_emotion,
                    "dialogue": s.dialogue,
                }
                for s in self.scenes
            ],
            "overall_mood": self.overall_mood,
            "marketing_insight": self.marketing_insight,
        }


class FeedingScriptWriter:
    """Writes deterministic feeding scripts from simulation results."""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = (config or ScoringConfig()).ensure_valid()

    def write(
        self,
        pair: PersonaPair,
        owner_result: OwnerSimulationResult,
        pet_result: PetSimulationResult,
        analysis: InteractionAnalysis,
    ) -> FeedingScript:
        owner_name = pair.owner.name or "The owner"
        pet_name = pair.pet.name or "the pet"

        scenes = [
            self._opening_scene(owner_name, pet_name, pet_result),
            self._meal_scene(pet_name, pair.pet.eating_habit, pet_result),
            self._aftermath_scene(pet_name, analysis.scenario, owner_result),
        ]
        return FeedingScript(
            persona_id=analysis.persona_id,
            product_id=analysis.product_id,
            scenes=scenes,
            overall_mood=_MOOD[analysis.scenario],
            marketing_insight=_MARKETING[analysis.scenario],
        )

    def _opening_scene(
        self,
        owner_name: str,
        pet_name: str,
        pet_result: PetSimulationResult,
    ) -> FeedingScene:
        action = f"{owner_name} opens the new bag of food"
        if pet_result.smell_attraction > self.config.pet.eager_smell:
            return FeedingScene(
                action,
                f"{pet_name} comes running at the sound of the bag",
                "a flicker of excitement",
                f'"{pet_name}, new food! Want to try it?"',
            )
        if pet_result.smell_attraction > self.config.pet.curious_smell:
            return FeedingScene(
                action,
                f"{pet_name} wanders over and sniffs the air",
                "cautiously hopeful",
                '"Let\'s see what you think of this one."',
            )
        return FeedingScene(
            action,
            f"{pet_name} glances over but stays put",
            "a little uneasy",
            '"Come on, give it a chance."',
        )

    def _meal_scene(
        self,
        pet_name: str,
        habit: EatingHabit,
        pet_result: PetSimulationResult,
    ) -> FeedingScene:
        action = "The food goes into the bowl"
        taste = pet_result.taste_acceptance
        if habit == EatingHabit.GREEDY or taste > self.config.pet.eager_taste:
            reaction = f"{pet_name} eats eagerly and licks the bowl clean"
            emotion = "relieved and pleased"
        elif taste > self.config.pet.settled_taste:
            reaction = f"{pet_name} takes small bites, then settles in and finishes"
            emotion = "relieved that it is being eaten"
        else:
            reaction = f"{pet_name} picks at a few pieces and walks away"
            emotion = "disappointed"
        return FeedingScene(action, reaction, emotion)

    def _aftermath_scene(
        self,
        pet_name: str,
        scenario: Scenario,
        owner_result: OwnerSimulationResult,
    ) -> FeedingScene:
        if scenario == Scenario.REJECTION:
            return FeedingScene(
                "Over the next days the owner keeps an eye on things",
                f"{pet_name} shows signs of an upset stomach or refuses the bowl",
                "worried, and regrets the switch",
                '"Maybe this one just isn\'t for you."',
            )
        if scenario == Scenario.DISAPPOINTMENT:
            return FeedingScene(
                "A week later the owner takes stock",
                f"{pet_name} eats it, but without much enthusiasm",
                "underwhelmed given the price",
                '"I expected more for what it cost."',
            )
        emotion = "satisfied the money was well spent"
        if scenario == Scenario.SURPRISE:
            emotion = "surprised; this went better than expected"
        dialogue = '"Good job, time for a nap."'
        if owner_result.intent_score < self.config.intent.medium_threshold:
            dialogue = '"Well, that settles it."'
        return FeedingScene(
            "After the meal",
            f"{pet_name} licks its lips and curls up for a nap",
            emotion,
            dialogue,
        )
