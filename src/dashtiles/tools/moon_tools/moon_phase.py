"""
Lunar phase lookup.

The moon's age is the number of days since a reference new moon, folded into
one synodic month. A phase table maps half-open age ranges to named phases.
"""

import datetime
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

import pytz

from dashtiles.utils.custom_exception import InputError, ProviderError
from dashtiles.utils.logging_handler import setup_logger

logger = setup_logger(__name__)

REFERENCE_NEW_MOON = datetime.datetime(2024, 1, 11, 11, 57, tzinfo=pytz.utc)
LUNAR_CYCLE_DAYS = 29.5305882

SECONDS_PER_DAY = 24 * 60 * 60

PHASE_DESCRIPTIONS = {
    "New Moon": "The moon is not visible in the sky",
    "Young Moon": "A thin crescent after the new moon",
    "First Quarter": "Half of the lunar disc is lit",
    "Waxing Moon": "The moon keeps growing",
    "Full Moon": "The moon is fully lit",
    "Waning Moon": "The moon starts to shrink",
    "Last Quarter": "The other half of the disc is lit",
    "Old Moon": "A thin crescent before the new moon",
}
GENERIC_DESCRIPTION = "Moon phase"


@dataclass(frozen=True)
class PhaseRange:
    name: str
    emoji: str
    min: float
    max: float

    def contains(self, age_days: float) -> bool:
        return self.min <= age_days < self.max

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "emoji": self.emoji, "min": self.min, "max": self.max}


@dataclass(frozen=True)
class MoonReading:
    phase_name: str
    emoji: str
    age_days: float
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phaseName": self.phase_name,
            "emoji": self.emoji,
            "ageDays": self.age_days,
            "description": self.description,
        }


# used when the phase table cannot be fetched
FALLBACK_PHASE_TABLE = (
    PhaseRange("New Moon", "\U0001F311", 0, 1),
    PhaseRange("Full Moon", "\U0001F315", 13.38, 15.38),
)


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value


def moon_age_days(
    date: datetime.datetime,
    reference_new_moon: datetime.datetime = REFERENCE_NEW_MOON,
    cycle_length_days: float = LUNAR_CYCLE_DAYS,
) -> float:
    """Days since the last new moon, in [0, cycle_length_days)."""
    if not cycle_length_days > 0:
        raise InputError(f"Cycle length must be positive, got {cycle_length_days!r}")
    diff_days = (_as_utc(date) - _as_utc(reference_new_moon)).total_seconds() / SECONDS_PER_DAY
    age = diff_days % cycle_length_days
    if age < 0:
        age += cycle_length_days
    return age


def determine_phase(age_days: float, phases: Sequence[PhaseRange]) -> PhaseRange:
    """First range containing age_days; the last entry when none does."""
    if not phases:
        raise InputError("Phase table is empty")
    for phase in phases:
        if phase.contains(age_days):
            return phase
    logger.debug(f"No phase found for age {age_days:.3f}, using last entry '{phases[-1].name}'.")
    return phases[-1]


def describe_phase(phase_name: str) -> str:
    return PHASE_DESCRIPTIONS.get(phase_name, GENERIC_DESCRIPTION)


def calculate(
    date: datetime.datetime,
    phases: Sequence[PhaseRange],
    reference_new_moon: datetime.datetime = REFERENCE_NEW_MOON,
    cycle_length_days: float = LUNAR_CYCLE_DAYS,
) -> MoonReading:
    """
    Compute the moon reading for a point in time.

    Args:
        date: Moment to evaluate. Naive datetimes are read as UTC.
        phases: Ordered phase table; the first half-open match wins.
        reference_new_moon: A known new moon.
        cycle_length_days: Synodic month length in days.

    Raises:
        InputError: If the phase table is empty or the cycle length is not positive.
    """
    if not phases:
        raise InputError("Phase table is empty")
    age = moon_age_days(date, reference_new_moon, cycle_length_days)
    phase = determine_phase(age, phases)
    return MoonReading(
        phase_name=phase.name,
        emoji=phase.emoji,
        age_days=round(age, 1),
        description=describe_phase(phase.name),
    )


class MoonPhaseCalculator:
    """Binds the reference epoch and cycle length so callers only pass a time and a table."""

    def __init__(
        self,
        reference_new_moon: datetime.datetime = REFERENCE_NEW_MOON,
        cycle_length_days: float = LUNAR_CYCLE_DAYS,
    ):
        if not cycle_length_days > 0:
            raise InputError(f"Cycle length must be positive, got {cycle_length_days!r}")
        self.reference_new_moon = _as_utc(reference_new_moon)
        self.cycle_length_days = cycle_length_days

    def calculate(self, date: datetime.datetime, phases: Sequence[PhaseRange]) -> MoonReading:
        reading = calculate(date, phases, self.reference_new_moon, self.cycle_length_days)
        logger.info(f"Moon phase for {date.isoformat()}: {reading.phase_name} ({reading.age_days} days).")
        return reading


def parse_phase_table(document: Any) -> List[PhaseRange]:
    """
    Parse a ``{"moonPhases": [{name, emoji, min, max}, ...]}`` document.

    Raises:
        ProviderError: If the document is not shaped like a phase table.
    """
    if not isinstance(document, dict) or not isinstance(document.get("moonPhases"), list):
        raise ProviderError("Phase table document has no 'moonPhases' list")
    phases = []
    for index, entry in enumerate(document["moonPhases"]):
        try:
            phase = PhaseRange(
                name=str(entry["name"]),
                emoji=str(entry.get("emoji", "")),
                min=float(entry["min"]),
                max=float(entry["max"]),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ProviderError(f"Malformed phase entry #{index}: {e!r}") from e
        if phase.max <= phase.min:
            raise ProviderError(f"Phase '{phase.name}' has an empty range [{phase.min}, {phase.max})")
        phases.append(phase)
    if not phases:
        raise ProviderError("Phase table document is empty")
    return phases
