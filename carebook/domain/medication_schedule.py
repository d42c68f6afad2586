from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

MIN_FREQUENCY = 1
MAX_FREQUENCY = 6


class MealRelation(str, Enum):
    PRE_BREAKFAST = "pre-breakfast"
    POST_BREAKFAST = "post-breakfast"
    PRE_LUNCH = "pre-lunch"
    POST_LUNCH = "post-lunch"
    PRE_DINNER = "pre-dinner"
    POST_DINNER = "post-dinner"
    WITH_MEAL = "with-meal"
    EMPTY_STOMACH = "empty-stomach"
    OTHER = "other"


@dataclass(frozen=True)
class ScheduleRow:
    time: Optional[str] = None
    meal_relation: Optional[MealRelation] = None
    quantity: Optional[str] = None

    @property
    def is_blank(self) -> bool:
        return not self.time and not self.quantity

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["meal_relation"] = self.meal_relation.value if self.meal_relation else None
        return data


RowLike = Union[ScheduleRow, Mapping[str, Any]]


def validate_frequency(frequency: Any) -> int:
    try:
        value = int(frequency)
    except (TypeError, ValueError):
        raise ValueError(f"Frequency must be a whole number between {MIN_FREQUENCY} and {MAX_FREQUENCY}")
    if isinstance(frequency, float) and frequency != value:
        raise ValueError(f"Frequency must be a whole number between {MIN_FREQUENCY} and {MAX_FREQUENCY}")
    if not MIN_FREQUENCY <= value <= MAX_FREQUENCY:
        raise ValueError(f"Frequency must be between {MIN_FREQUENCY} and {MAX_FREQUENCY} doses per day")
    return value


def parse_meal_relation(value: Any) -> Optional[MealRelation]:
    if value in (None, ""):
        return None
    try:
        return MealRelation(value)
    except ValueError:
        valid = ", ".join(m.value for m in MealRelation)
        raise ValueError(f"Invalid meal relation '{value}'. Must be one of: {valid}")


def to_row(raw: RowLike) -> ScheduleRow:
    if isinstance(raw, ScheduleRow):
        return raw
    meal = raw.get("meal_relation", raw.get("mealRelation"))
    quantity = raw.get("quantity")
    return ScheduleRow(
        time=raw.get("time") or None,
        meal_relation=parse_meal_relation(meal),
        quantity=str(quantity) if quantity not in (None, "") else None,
    )


def build_schedule_rows(frequency: Any, existing: Sequence[RowLike] = ()) -> List[ScheduleRow]:
    """Return exactly ``frequency`` rows, bound to ``existing`` by position.

    Positions past the end of ``existing`` come back blank. Existing rows
    beyond ``frequency`` are left out of the result but ``existing`` itself
    is not touched, so lowering the frequency loses nothing until save.
    """
    count = validate_frequency(frequency)
    rows = [to_row(raw) for raw in list(existing)[:count]]
    rows.extend(ScheduleRow() for _ in range(count - len(rows)))
    return rows


def compact_schedule(rows: Iterable[RowLike], frequency: Any) -> List[ScheduleRow]:
    """Normalize a schedule for storage.

    Keeps the first ``frequency`` rows and drops rows that carry neither a
    time nor a quantity.
    """
    count = validate_frequency(frequency)
    kept = [to_row(raw) for raw in list(rows)[:count]]
    return [row for row in kept if not row.is_blank]


def schedule_to_json(rows: Iterable[ScheduleRow]) -> List[Dict[str, Any]]:
    return [row.to_dict() for row in rows]
