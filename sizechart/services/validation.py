from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional

from ..schemas.chart import MeasurementField


REQUIRED = "required"
NOT_A_NUMBER = "not_a_number"
BELOW_MIN = "below_min"
ABOVE_MAX = "above_max"


@dataclass(frozen=True)
class FieldError:
    field_id: str
    code: str
    message: str


def parse_measurement(raw: object) -> Optional[float]:
    """Numeric value of an input, None when blank. Raises ValueError on junk."""
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValueError("not a number")
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip()
        if not text:
            return None
        value = float(text)
    if value != value or value in (float("inf"), float("-inf")):
        raise ValueError("not a number")
    return value


def _bounds_message(field: MeasurementField) -> str:
    if field.min is not None and field.max is not None:
        return f"Enter a value between {field.min:g} and {field.max:g} {field.unit}"
    if field.min is not None:
        return f"Enter a value of at least {field.min:g} {field.unit}"
    return f"Enter a value of at most {field.max:g} {field.unit}"


def check_field(field: MeasurementField, raw: object) -> Optional[FieldError]:
    try:
        value = parse_measurement(raw)
    except ValueError:
        return FieldError(field.key, NOT_A_NUMBER, "Enter a number")
    if value is None:
        if field.required:
            return FieldError(field.key, REQUIRED, "This measurement is required")
        return None
    if field.min is not None and value < field.min:
        return FieldError(field.key, BELOW_MIN, _bounds_message(field))
    if field.max is not None and value > field.max:
        return FieldError(field.key, ABOVE_MAX, _bounds_message(field))
    return None


def validate_measurements(fields: Iterable[MeasurementField], values: Mapping[str, object]) -> List[FieldError]:
    """Errors in field display order. Disabled fields are never checked."""
    errors = []
    for field in fields:
        if not field.enabled:
            continue
        error = check_field(field, values.get(field.key))
        if error is not None:
            errors.append(error)
    return errors
