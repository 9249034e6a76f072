import pytest

from sizechart.schemas.chart import MeasurementField
from sizechart.services.validation import ABOVE_MAX, BELOW_MIN, NOT_A_NUMBER, REQUIRED, parse_measurement, validate_measurements

FIELDS = [
    MeasurementField(id="chest", name="Chest", required=True, min=20, max=60),
    MeasurementField(id="waist", name="Waist", required=False, min=20, max=50),
    MeasurementField(id="neck", name="Neck", required=True, enabled=False),
]


@pytest.mark.parametrize(
    "chest, code",
    [("", REQUIRED), ("  ", REQUIRED), ("abc", NOT_A_NUMBER), ("70", ABOVE_MAX), ("19.9", BELOW_MIN)],
)
def test_required_field_rules(chest, code):
    errors = validate_measurements(FIELDS, {"chest": chest})
    assert [(e.field_id, e.code) for e in errors] == [("chest", code)]


def test_bounds_are_inclusive_and_disabled_fields_skipped():
    assert validate_measurements(FIELDS, {"chest": "20", "waist": "50"}) == []
    assert validate_measurements(FIELDS, {"chest": 60}) == []


def test_optional_value_still_bounds_checked():
    errors = validate_measurements(FIELDS, {"chest": "40", "waist": "55"})
    assert [(e.field_id, e.code) for e in errors] == [("waist", ABOVE_MAX)]


def test_parse_measurement():
    assert parse_measurement(" 38.5 ") == 38.5
    assert parse_measurement("") is None
    with pytest.raises(ValueError):
        parse_measurement("nan")
