from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ExtractedField(Generic[T]):
    """A single extracted value with its confidence in [0, 1]."""

    value: T
    confidence: float


@dataclass(frozen=True)
class ExtractedEntities:
    """Structured facts pulled out of raw document text.

    ``date`` and ``amount`` are the first elements of ``all_dates`` and
    ``all_amounts`` respectively when present.
    """

    date: ExtractedField[str] | None = None
    amount: ExtractedField[float] | None = None
    vendor: ExtractedField[str] | None = None
    description: str = "No description available"
    currency: str = "USD"
    all_amounts: list[ExtractedField[float]] = field(default_factory=list)
    all_dates: list[ExtractedField[str]] = field(default_factory=list)
