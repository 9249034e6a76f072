"""Turns captured measurements into checkout line-item properties."""
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

CUSTOM_ORDER_PROPERTY = "_custom_order"


def title_case_label(name: str) -> str:
    """``"chest/bust"`` -> ``"Chest / Bust"``, ``"upper arm"`` -> ``"Upper Arm"``."""
    joined = " / ".join(_capitalize(part.strip()) for part in str(name).split("/"))
    return " ".join(_capitalize(word) for word in joined.split(" "))


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def format_measurement(value: Any) -> Optional[str]:
    """String form of a measurement, or None when there is nothing to send."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            value = float(value)
        except ValueError:
            return None
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        if value.is_integer():
            return str(int(value))
        return str(value)
    return str(value)


def build_cart_properties(
    measurements: Mapping[str, Any],
    field_name: Callable[[str], Optional[str]] | Mapping[str, str] | None = None,
) -> Dict[str, str]:
    """Map field ids to human labels; empty values are dropped."""
    if field_name is None:
        lookup: Callable[[str], Optional[str]] = lambda _key: None
    elif callable(field_name):
        lookup = field_name
    else:
        lookup = field_name.get

    properties: Dict[str, str] = {}
    for field_id, value in measurements.items():
        text = format_measurement(value)
        if text is None:
            continue
        properties[title_case_label(lookup(field_id) or field_id)] = text
    return properties


@dataclass
class CartLineItem:
    variant_id: int
    properties: Dict[str, str] = field(default_factory=dict)
    quantity: int = 1

    @classmethod
    def for_custom_order(cls, variant_id: Any, properties: Mapping[str, str]) -> "CartLineItem":
        return cls(variant_id=int(variant_id), properties={CUSTOM_ORDER_PROPERTY: "true", **properties})

    def to_payload(self) -> Dict[str, Any]:
        # The host cart endpoint names the variant "id"
        return {"id": self.variant_id, "quantity": self.quantity, "properties": dict(self.properties)}
