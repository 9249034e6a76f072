from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChartKind(str, Enum):
    TABLE = "table"
    CUSTOM = "custom"


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class TableColumn(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    label: str = ""


class TableChart(BaseModel):
    """Size grid: one row per size, one cell per declared column."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    kind: Literal[ChartKind.TABLE] = Field(ChartKind.TABLE, exclude=True)
    columns: List[TableColumn] = Field(default_factory=list)
    size_data: List[Dict[str, Any]] = Field(default_factory=list, alias="sizeData")

    @field_validator("columns", mode="before")
    @classmethod
    def _coerce_columns(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        out = []
        for col in value:
            if isinstance(col, str):
                out.append({"id": col, "label": col})
            elif isinstance(col, dict) and col.get("id") is not None:
                out.append({**col, "id": str(col["id"])})
        return out

    @field_validator("size_data", mode="before")
    @classmethod
    def _coerce_rows(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [row for row in value if isinstance(row, dict)]

    def cell(self, row: Dict[str, Any], column_id: str) -> str:
        value = row.get(column_id)
        if value is None or value == "":
            return "-"
        return str(value)

    def render_rows(self) -> List[List[str]]:
        """Rows as display strings, size first. Missing cells render as "-"."""
        return [[self.cell(row, "size")] + [self.cell(row, c.id) for c in self.columns] for row in self.size_data]


class MeasurementField(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = None
    name: str = ""
    required: bool = False
    enabled: bool = True
    order: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    unit: Literal["in", "cm"] = "in"
    description: Optional[str] = None
    custom_instructions: Optional[str] = Field(None, alias="customInstructions")
    guide_image: Optional[str] = Field(None, alias="guideImage")
    guide_image_url: Optional[str] = Field(None, alias="guideImageUrl")

    @field_validator("order", "min", "max", mode="before")
    @classmethod
    def _blank_numbers(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        return None if value is None else str(value)

    @field_validator("unit", mode="before")
    @classmethod
    def _normalize_unit(cls, value: Any) -> str:
        unit = str(value or "in").strip().lower()
        if unit in ("cm", "centimeter", "centimeters"):
            return "cm"
        return "in"

    @property
    def key(self) -> str:
        return self.id or self.name

    @property
    def instructions(self) -> str:
        return self.custom_instructions or self.description or ""

    @property
    def image(self) -> Optional[str]:
        return self.guide_image_url or self.guide_image


class FitOption(BaseModel):
    value: str
    label: str
    ease: Optional[float] = None


DEFAULT_FIT_OPTIONS: List[FitOption] = [
    FitOption(value="slim", label="Slim Fit"),
    FitOption(value="regular", label="Regular Fit"),
    FitOption(value="loose", label="Loose Fit"),
]


class MeasurementChart(BaseModel):
    """Form that collects a buyer's own measurements.

    A saved profile is the same shape with ``saved_measurements`` populated.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    kind: Literal[ChartKind.CUSTOM] = Field(ChartKind.CUSTOM, exclude=True)
    category: str = "custom"
    measurement_fields: List[MeasurementField] = Field(default_factory=list, alias="measurementFields")
    fit_preferences_enabled: bool = Field(False, alias="fitPreferencesEnabled")
    stitching_notes_enabled: bool = Field(False, alias="stitchingNotesEnabled")
    fit_preferences: List[FitOption] = Field(default_factory=lambda: list(DEFAULT_FIT_OPTIONS), alias="fitPreferences")
    saved_measurements: Optional[Dict[str, float]] = Field(None, alias="savedMeasurements")
    fit_preference: Optional[str] = Field(None, alias="fitPreference")
    stitching_notes: Optional[str] = Field(None, alias="stitchingNotes")

    @field_validator("measurement_fields", mode="before")
    @classmethod
    def _fields_list(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [f for f in value if isinstance(f, dict)]

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value: Any) -> Any:
        return value or "custom"

    @field_validator("fit_preferences", mode="before")
    @classmethod
    def _fit_options(cls, value: Any) -> Any:
        # Stored either as [{value, label}] / ["slim", ...] or {key: {label, ease}}
        if isinstance(value, dict):
            options = []
            for key, option in value.items():
                option = option if isinstance(option, dict) else {"label": option}
                options.append({"value": str(key), "label": str(option.get("label") or key), "ease": _blank_to_none(option.get("ease"))})
            return options or list(DEFAULT_FIT_OPTIONS)
        if isinstance(value, list) and value:
            options = []
            for opt in value:
                if isinstance(opt, str):
                    options.append({"value": opt, "label": opt})
                elif isinstance(opt, dict) and opt.get("value") is not None:
                    options.append({"value": str(opt["value"]), "label": str(opt.get("label") or opt["value"]), "ease": _blank_to_none(opt.get("ease"))})
            return options or list(DEFAULT_FIT_OPTIONS)
        return list(DEFAULT_FIT_OPTIONS)

    @field_validator("saved_measurements", mode="before")
    @classmethod
    def _numeric_measurements(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, dict):
            return {}
        out: Dict[str, float] = {}
        for key, raw in value.items():
            if raw is None or raw == "":
                continue
            try:
                out[str(key)] = float(raw)
            except (TypeError, ValueError):
                continue
        return out

    @property
    def is_saved_profile(self) -> bool:
        return self.saved_measurements is not None

    def enabled_fields(self) -> List[MeasurementField]:
        """Enabled fields sorted by ``order``; ties keep their stored order."""
        indexed = [(i, f) for i, f in enumerate(self.measurement_fields) if f.enabled]
        indexed.sort(key=lambda pair: (pair[1].order if pair[1].order is not None else pair[0], pair[0]))
        return [f for _, f in indexed]

    def field(self, key: str) -> Optional[MeasurementField]:
        for f in self.measurement_fields:
            if f.key == key:
                return f
        return None


ChartData = TableChart | MeasurementChart
