"""Single place that decides whether a chart blob is a table or a measurement form.

Every display, filter and count goes through ``classify``; nothing else
inspects ``isMeasurementTemplate`` directly.
"""
import json
from typing import Any, Dict

import pydantic
import structlog

from ..errors import ParseError
from ..schemas.chart import ChartData, ChartKind, MeasurementChart, TableChart


logger = structlog.get_logger("sizechart")


def parse_chart_data(raw: Any) -> Dict[str, Any]:
    """Return the blob as a dict. Invalid or missing JSON becomes ``{}``."""
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            parsed = _loads(raw)
        except ParseError as e:
            logger.warning("chart_data_parse_failed", error=e.message)
            return {}
        return parsed
    return {}


def _loads(raw: str) -> Dict[str, Any]:
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError as e:
        raise ParseError(f"chart data is not valid JSON: {e}")
    if not isinstance(parsed, dict):
        raise ParseError(f"chart data must be a JSON object, got {type(parsed).__name__}")
    return parsed


def classify(raw: Any) -> ChartKind:
    data = parse_chart_data(raw)
    if data.get("isMeasurementTemplate") is True:
        return ChartKind.CUSTOM
    return ChartKind.TABLE


def load_chart(raw: Any) -> ChartData:
    """Deserialize once into the tagged variant."""
    data = parse_chart_data(raw)
    kind = classify(data)
    model = MeasurementChart if kind is ChartKind.CUSTOM else TableChart
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        logger.warning("chart_data_invalid", kind=kind.value, error_count=e.error_count())
        return model()


def parse_kind(value: str | None) -> ChartKind | None:
    """Map a ``templateType`` query value onto a kind; unknown values mean "any"."""
    if not value:
        return None
    try:
        return ChartKind(value.strip().lower())
    except ValueError:
        return None
