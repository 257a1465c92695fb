"""Exception types raised by the simulation core."""

from typing import List, Optional


class PetFoodSimError(Exception):
    """Base class for all simulation errors."""


class ConfigurationError(PetFoodSimError, ValueError):
    """
    Raised when a scoring or batch configuration is invalid.
    
    Collects every problem found so a caller can fix them in one pass.
    """
    
    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("invalid configuration: " + "; ".join(self.problems))


class MalformedRecordError(PetFoodSimError, ValueError):
    """Raised when a persona or product record is missing a required field."""
    
    def __init__(self, message: str, record_id: Optional[str] = None, field: Optional[str] = None):
        self.record_id = record_id
        self.field = field
        super().__init__(message)
