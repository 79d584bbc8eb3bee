"""
Liquidity Sweep Configuration

Centralized configuration for the sweep engine. Pyramid depth is chosen from
a small set of detection terms; deeper pyramids confirm fewer, more
significant swings.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict


class DetectionTerm(Enum):
    """
    Swing significance presets.

    Each term maps to the number of cascading depth levels a candidate
    extremum must survive before it is confirmed as a swing.
    """
    SHORT = "Short Term"
    INTERMEDIATE = "Intermediate Term"
    LONG = "Long Term"

    @property
    def depth(self) -> int:
        return _TERM_DEPTHS[self]

    @classmethod
    def parse(cls, value: str) -> "DetectionTerm":
        """
        Parse a term from its label ("Long Term") or short name ("long").

        Raises:
            ValueError: If the value matches no term.
        """
        normalized = value.strip().lower()
        for term in cls:
            if normalized in (term.value.lower(), term.name.lower()):
                return term
        valid = ", ".join(t.name.lower() for t in cls)
        raise ValueError(f"Unknown detection term '{value}'. Expected one of: {valid}")


_TERM_DEPTHS = {
    DetectionTerm.SHORT: 1,
    DetectionTerm.INTERMEDIATE: 2,
    DetectionTerm.LONG: 3,
}

DEFAULT_MAX_LEVEL_AGE = 2000


@dataclass(frozen=True)
class SweepConfig:
    """
    All configurable parameters for liquidity sweep detection.

    Attributes:
        term: Detection term selecting the pyramid depth. Default LONG (depth 3).
        max_level_age: Bars after its origin that a level stays live. A level
            whose age exceeds this ceiling is removed even if never touched.
        skip_invalid_bars: Malformed-bar policy. False raises InvalidBarError,
            True logs a warning and ignores the bar. Fixed for an engine's lifetime.

    Example:
        >>> config = SweepConfig.default()
        >>> config.depth
        3
        >>> config.with_term(DetectionTerm.SHORT).depth
        1
    """
    term: DetectionTerm = field(default=DetectionTerm.LONG)
    max_level_age: int = DEFAULT_MAX_LEVEL_AGE
    skip_invalid_bars: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.term, DetectionTerm):
            raise TypeError(f"term must be a DetectionTerm, got {type(self.term).__name__}")
        if self.max_level_age < 1:
            raise ValueError(f"max_level_age must be >= 1, got {self.max_level_age}")

    @property
    def depth(self) -> int:
        """Number of pyramid depth levels."""
        return self.term.depth

    @classmethod
    def default(cls) -> "SweepConfig":
        """Create a config with default values."""
        return cls()

    @classmethod
    def from_term_label(cls, label: str, **kwargs: Any) -> "SweepConfig":
        """Create a config from a term label such as "Intermediate Term"."""
        return cls(term=DetectionTerm.parse(label), **kwargs)

    def with_term(self, term: DetectionTerm) -> "SweepConfig":
        """
        Create a new config with a different detection term.

        Since SweepConfig is frozen, this creates a new instance.
        """
        return replace(self, term=term)

    def with_max_level_age(self, max_level_age: int) -> "SweepConfig":
        """
        Create a new config with a different level age ceiling.

        Since SweepConfig is frozen, this creates a new instance.
        """
        return replace(self, max_level_age=max_level_age)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "term": self.term.value,
            "depth": self.depth,
            "max_level_age": self.max_level_age,
            "skip_invalid_bars": self.skip_invalid_bars,
        }
