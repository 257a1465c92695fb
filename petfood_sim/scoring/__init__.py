"""Scoring module - Shared primitives and validated scoring configuration."""

from .primitives import Level, ScoreAccumulator, ReasonTrace, ReasonKind, clamp, band
from .config import ScoringConfig, PriceBands, load_config

__all__ = [
    "Level",
    "ScoreAccumulator",
    "ReasonTrace",
    "ReasonKind",
    "clamp",
    "band",
    "ScoringConfig",
    "PriceBands",
    "load_config",
]
