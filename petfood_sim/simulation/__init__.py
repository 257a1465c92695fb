"""Simulation module - Interaction analysis, feeding scripts and batch runs.

Batch runs live in ``petfood_sim.simulation.batch``.
"""

from .interaction import InteractionAnalyst, InteractionAnalysis, Scenario, ChurnRisk, CombinedDecision
from .narratives import FeedingScriptWriter, FeedingScript, FeedingScene

__all__ = [
    "InteractionAnalyst",
    "InteractionAnalysis",
    "Scenario",
    "ChurnRisk",
    "CombinedDecision",
    "FeedingScriptWriter",
    "FeedingScript",
    "FeedingScene",
]
