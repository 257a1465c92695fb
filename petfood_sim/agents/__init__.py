"""Agents module - Persona records, owner agent and pet agent."""

from .profiles import OwnerProfile, PetProfile, Product, PersonaPair, FeedingPhilosophy
from .owner import OwnerAgent, OwnerSimulationResult, PurchaseIntent, FinalDecision, PricePerceptionLevel
from .pet import PetAgent, PetSimulationResult, DigestiveRisk, PetPreference

__all__ = [
    "OwnerProfile",
    "PetProfile",
    "Product",
    "PersonaPair",
    "FeedingPhilosophy",
    "OwnerAgent",
    "OwnerSimulationResult",
    "PurchaseIntent",
    "FinalDecision",
    "PricePerceptionLevel",
    "PetAgent",
    "PetSimulationResult",
    "DigestiveRisk",
    "PetPreference",
]
