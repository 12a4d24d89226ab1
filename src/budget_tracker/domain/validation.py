import math
from datetime import date
from typing import Any

from budget_tracker.errors import ValidationError


def require(value: Any, message: str) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(message)
    return value


def parse_amount(raw: float | str | None, *, label: str = "amount") -> float:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError(f"Please enter the {label}.")
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Please enter a valid {label}.") from exc
    if not math.isfinite(value) or value <= 0:
        raise ValidationError(f"Please enter a valid {label} greater than 0.")
    return value


def parse_date(raw: str | None, *, default: date | None = None) -> date:
    if not raw:
        return default or date.today()
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError(f"Invalid date '{raw}'. Use YYYY-MM-DD.") from exc


def parse_id_list(raw: str | None) -> list[str]:
    """Parse a comma-separated id list, dropping blanks and duplicates."""
    if not raw:
        return []
    ids: list[str] = []
    seen = set()
    for part in raw.split(","):
        value = part.strip()
        if value and value not in seen:
            ids.append(value)
            seen.add(value)
    return ids
