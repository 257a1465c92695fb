"""
Shared scoring primitives for the owner and pet agents.

Both agents score on the same 0-100 scale and map scores onto
low/medium/high bands, so the interaction analyst can reconcile
their outputs. The pieces here keep that arithmetic in one place:
clamping, threshold banding, labelled delta accumulation and an
ordered reasoning trace.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple
import re


SCORE_MIN = 0.0
SCORE_MAX = 100.0


class Level(Enum):
    """Three-band level shared by intent, acceptance and risk scoring."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    def __ge__(self, other: "Level") -> bool:
        return self.rank >= other.rank

    def __gt__(self, other: "Level") -> bool:
        return self.rank > other.rank

    def __le__(self, other: "Level") -> bool:
        return self.rank <= other.rank

    def __lt__(self, other: "Level") -> bool:
        return self.rank < other.rank


_LEVEL_RANK = {Level.LOW: 0, Level.MEDIUM: 1, Level.HIGH: 2}


def clamp(value: float, lower: float = SCORE_MIN, upper: float = SCORE_MAX) -> float:
    """Clamp a value into [lower, upper]."""
    return max(lower, min(upper, value))


def band(score: float, high_threshold: float, medium_threshold: float) -> Level:
    """
    Map a score onto a three-band level.

    A score at or above ``high_threshold`` is HIGH, at or above
    ``medium_threshold`` is MEDIUM, anything else is LOW. The mapping
    is monotone in ``score`` for fixed thresholds.
    """
    if score >= high_threshold:
        return Level.HIGH
    if score >= medium_threshold:
        return Level.MEDIUM
    return Level.LOW


@dataclass
class ScoreDelta:
    """A single labelled adjustment applied to a score."""
    label: str
    amount: float


@dataclass
class ScoreAccumulator:
    """
    Additive score with a labelled history of adjustments.

    The running total is unbounded while deltas are applied; ``value``
    clamps it into [lower, upper] when read, so intermediate ordering
    never changes the result.
    """
    base: float
    lower: float = SCORE_MIN
    upper: float = SCORE_MAX
    deltas: List[ScoreDelta] = field(default_factory=list)

    def add(self, amount: float, label: str = "") -> "ScoreAccumulator":
        """Apply an adjustment. Zero adjustments are not recorded."""
        if amount:
            self.deltas.append(ScoreDelta(label, amount))
        return self

    def add_if(self, condition: bool, amount: float, label: str = "") -> "ScoreAccumulator":
        if condition:
            self.add(amount, label)
        return self

    @property
    def raw(self) -> float:
        return self.base + sum(d.amount for d in self.deltas)

    @property
    def value(self) -> float:
        return clamp(self.raw, self.lower, self.upper)

    def factors(self, positive_only: bool = False) -> List[str]:
        """Labels of applied adjustments, in application order."""
        return [
            d.label for d in self.deltas
            if d.label and (d.amount > 0 or not positive_only)
        ]

    def top_factors(self, n: int = 3) -> List[str]:
        """Labels of the ``n`` largest adjustments by magnitude.

        Ties keep application order, so the result is stable.
        """
        ranked = sorted(
            enumerate(d for d in self.deltas if d.label),
            key=lambda item: (-abs(item[1].amount), item[0]),
        )
        return [d.label for _, d in ranked[:n]]


class ReasonKind(Enum):
    """Sections of a reasoning trace, in the order they are rendered."""
    PRICE = "price"
    TRUST = "trust"
    CONCERN = "concern"
    CONSIDERATION = "consideration"
    CONCLUSION = "conclusion"


@dataclass
class ReasonEntry:
    kind: ReasonKind
    text: str


class ReasonTrace:
    """
    Builder for an ordered, human-readable explanation of a score.

    Entries keep insertion order; ``render`` produces the plain strings
    handed to downstream consumers.
    """

    def __init__(self):
        self._entries: List[ReasonEntry] = []

    def add(self, kind: ReasonKind, text: str) -> "ReasonTrace":
        if text:
            self._entries.append(ReasonEntry(kind, text))
        return self

    def extend(self, kind: ReasonKind, texts: Iterable[str]) -> "ReasonTrace":
        for text in texts:
            self.add(kind, text)
        return self

    @property
    def entries(self) -> List[ReasonEntry]:
        return list(self._entries)

    def kinds(self) -> List[ReasonKind]:
        return [e.kind for e in self._entries]

    def render(self) -> List[str]:
        return [e.text for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)


_SEPARATORS = re.compile(r"[\s_\-]+")


def normalize_term(text: str) -> str:
    """Lower-case a term and collapse hyphens, underscores and whitespace."""
    return _SEPARATORS.sub(" ", str(text).lower()).strip()


def lexical_match(needle: str, haystack: str) -> bool:
    """Whether ``needle`` occurs in ``haystack`` after normalization."""
    n = normalize_term(needle)
    return bool(n) and n in normalize_term(haystack)


def contains_any(texts: Iterable[str], keywords: Iterable[str]) -> bool:
    """Whether any text contains any keyword."""
    keywords = [normalize_term(k) for k in keywords if normalize_term(k)]
    return any(k in normalize_term(t) for t in texts for k in keywords)


def first_match(texts: Sequence[str], keywords: Iterable[str]) -> Optional[Tuple[str, str]]:
    """The first (text, keyword) pair where the text contains the keyword."""
    keywords = [k for k in keywords if normalize_term(k)]
    for text in texts:
        for keyword in keywords:
            if lexical_match(keyword, text):
                return text, keyword
    return None


def has_item(items: Iterable[str], name: str) -> bool:
    """Case- and separator-insensitive membership test."""
    target = normalize_term(name)
    return any(normalize_term(item) == target for item in items)
