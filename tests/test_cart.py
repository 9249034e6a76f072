import pytest

from sizechart.services.cart import CUSTOM_ORDER_PROPERTY, CartLineItem, build_cart_properties, format_measurement, title_case_label


@pytest.mark.parametrize(
    "name, label",
    [
        ("chest/bust", "Chest / Bust"),
        ("chest / bust", "Chest / Bust"),
        ("UPPER arm", "Upper Arm"),
        ("waist", "Waist"),
    ],
)
def test_title_case_label(name, label):
    assert title_case_label(name) == label


def test_empty_values_omitted():
    assert build_cart_properties({"chest/bust": 38, "waist": None}) == {"Chest / Bust": "38"}
    assert build_cart_properties({"hip": "", "neck": "  "}) == {}


def test_labels_come_from_field_names():
    props = build_cart_properties({"f1": 38.5, "f2": 30}, {"f1": "chest / bust"})
    assert props == {"Chest / Bust": "38.5", "F2": "30"}


def test_format_measurement():
    assert format_measurement(38.0) == "38"
    assert format_measurement("41.25") == "41.25"
    assert format_measurement(float("nan")) is None
    assert format_measurement(True) is None


def test_line_item_payload():
    line = CartLineItem.for_custom_order("4455", {"Chest": "38"})
    assert line.to_payload() == {"id": 4455, "quantity": 1, "properties": {CUSTOM_ORDER_PROPERTY: "true", "Chest": "38"}}
