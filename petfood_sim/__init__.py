"""
PetFoodSim

A rule-based consumer simulation framework for pet food concept tests.
Pairs of owner and pet personas react to a product; their reactions are
reconciled into expectation-confirmation scenarios and aggregated into
population-level market-research statistics.

All agent behavior is deterministic rule evaluation over configurable
thresholds. No models are trained and no text is generated freely.
"""

__version__ = "0.1.0"
