"""Measurement wizard for made-to-order products.

Flow: Details <-> HowToMeasure, Details -> Review (gated) -> SaveProfile or
AddToCart. PreviousProfiles is entered from Details and always returns there.

Every transition bumps ``epoch``. An async call remembers the epoch it was
started in and drops its result if the wizard has moved on or been closed
in the meantime; the request itself is never cancelled.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import structlog

from ..errors import NotFoundError, SizeChartError, ValidationError, VariantNotFoundError
from ..schemas.chart import FitOption, MeasurementChart, MeasurementField
from .cart import CartLineItem, build_cart_properties, format_measurement, title_case_label
from .classifier import load_chart, parse_chart_data
from .storefront_client import StorefrontClient
from .validation import FieldError, parse_measurement, validate_measurements


logger = structlog.get_logger("sizechart")

CHECKOUT_PATH = "/checkout"


class WizardState(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    DETAILS = "details"
    HOW_TO_MEASURE = "how_to_measure"
    REVIEW = "review"
    SAVE_PROFILE = "save_profile"
    PREVIOUS_PROFILES = "previous_profiles"
    COMPLETED = "completed"
    CLOSED = "closed"


ENTRY_STATES = (WizardState.DETAILS, WizardState.HOW_TO_MEASURE)
EDITABLE_STATES = (WizardState.DETAILS, WizardState.HOW_TO_MEASURE, WizardState.REVIEW)


@dataclass
class WizardContext:
    """What the host product page knows. Replaces page-level globals."""

    shop: str
    product_id: str
    variant_id_provider: Callable[[], Any] = field(default=lambda: None)


@dataclass
class FieldGuide:
    field_id: str
    title: str
    instructions: str
    image_url: Optional[str]
    unit: str
    min: Optional[float]
    max: Optional[float]


@dataclass
class ReviewRow:
    field_id: str
    label: str
    value: str
    unit: str
    required: bool


class WizardStateError(SizeChartError):
    """Action not available in the current state (a host wiring bug)."""


class MeasurementWizard:
    def __init__(self, context: WizardContext, client: StorefrontClient) -> None:
        self.context = context
        self.client = client

        self.state = WizardState.LOADING
        self.epoch = 0
        self.closed = False

        self.template: Dict[str, Any] = {}
        self.chart: Optional[MeasurementChart] = None
        self._raw_chart: Dict[str, Any] = {}

        self.values: Dict[str, str] = {}
        self.fit_preference = ""
        self.stitching_notes = ""
        self.unit = "in"

        self.field_errors: Dict[str, FieldError] = {}
        self.focus_field_id: Optional[str] = None
        self.guide_field_id: Optional[str] = None
        self.scroll_to_top = False
        self.error: Optional[SizeChartError] = None

        self.profiles: List[Dict[str, Any]] = []
        self.saved_profile: Optional[Dict[str, Any]] = None
        self.confirm_close_pending = False
        self.checkout_url: Optional[str] = None
        self.pending: Optional[str] = None

    # plumbing

    def _transition(self, state: WizardState) -> None:
        logger.debug("wizard_transition", shop=self.context.shop, product_id=self.context.product_id, from_state=self.state.value, to_state=state.value)
        self.state = state
        self.epoch += 1

    def _require(self, *states: WizardState) -> None:
        if self.closed or self.state not in states:
            raise WizardStateError(f"Action not available while {self.state.value}")

    def _is_current(self, epoch: int) -> bool:
        return not self.closed and epoch == self.epoch

    def _stale(self, action: str, epoch: int) -> None:
        logger.info("wizard_stale_response_ignored", action=action, started_epoch=epoch, epoch=self.epoch, closed=self.closed)

    def _begin(self, action: str) -> None:
        if self.pending:
            raise WizardStateError(f"{self.pending} already in progress")
        self.pending = action

    # loading

    async def load(self) -> bool:
        """Fetch the custom chart. Any failure replaces the body with an error panel."""
        self._require(WizardState.LOADING)
        epoch = self.epoch
        try:
            body = await self.client.fetch_chart(self.context.shop, self.context.product_id, kind="custom")
        except SizeChartError as e:
            if not self._is_current(epoch):
                self._stale("load", epoch)
                return False
            self.error = e
            self._transition(WizardState.ERROR)
            logger.warning("wizard_load_failed", shop=self.context.shop, product_id=self.context.product_id, error=e.message)
            return False
        if not self._is_current(epoch):
            self._stale("load", epoch)
            return False

        template = body["template"]
        raw_chart = parse_chart_data(template.get("chartData"))
        chart = load_chart(raw_chart)
        if not isinstance(chart, MeasurementChart) or not chart.enabled_fields():
            self.error = NotFoundError("This product has no measurement form", reason="template_missing")
            self._transition(WizardState.ERROR)
            return False

        self.template = {"id": template.get("id"), "name": template.get("name"), "productName": body.get("productName")}
        self.chart = chart
        self._raw_chart = raw_chart
        self.values = {f.key: "" for f in chart.enabled_fields()}
        self.unit = chart.enabled_fields()[0].unit
        self._transition(WizardState.DETAILS)
        return True

    # field entry

    @property
    def fields(self) -> List[MeasurementField]:
        return self.chart.enabled_fields() if self.chart else []

    @property
    def fit_options(self) -> List[FitOption]:
        if self.chart is None or not self.chart.fit_preferences_enabled:
            return []
        return self.chart.fit_preferences

    def _field(self, field_id: str) -> MeasurementField:
        for f in self.fields:
            if f.key == field_id:
                return f
        raise ValidationError(f"Unknown measurement field: {field_id}")

    def set_value(self, field_id: str, raw: Any) -> None:
        self._require(*EDITABLE_STATES)
        self._field(field_id)
        self.values[field_id] = "" if raw is None else str(raw).strip()
        self.field_errors.pop(field_id, None)

    def set_fit_preference(self, value: str) -> None:
        self._require(*EDITABLE_STATES)
        if self.chart is None or not self.chart.fit_preferences_enabled:
            raise ValidationError("Fit preferences are not enabled for this product")
        if value and value not in {opt.value for opt in self.chart.fit_preferences}:
            raise ValidationError(f"Unknown fit preference: {value}")
        self.fit_preference = value or ""

    def set_stitching_notes(self, text: str) -> None:
        self._require(*EDITABLE_STATES)
        if self.chart is None or not self.chart.stitching_notes_enabled:
            raise ValidationError("Stitching notes are not enabled for this product")
        self.stitching_notes = text or ""

    def set_unit(self, unit: str) -> None:
        """Display unit only; entered numbers are not converted."""
        self._require(*EDITABLE_STATES)
        if unit not in ("in", "cm"):
            raise ValidationError(f"Unsupported unit: {unit}")
        self.unit = unit

    def show_tab(self, state: WizardState) -> None:
        self._require(*ENTRY_STATES)
        if state not in ENTRY_STATES:
            raise WizardStateError(f"{state.value} is not a tab")
        if state is not self.state:
            self._transition(state)

    def show_guide(self, field_id: str) -> FieldGuide:
        self._require(*ENTRY_STATES)
        guide = self.guide_for(field_id)
        self.guide_field_id = field_id
        if self.state is not WizardState.HOW_TO_MEASURE:
            self._transition(WizardState.HOW_TO_MEASURE)
        return guide

    def guide_for(self, field_id: str) -> FieldGuide:
        f = self._field(field_id)
        return FieldGuide(
            field_id=f.key,
            title=title_case_label(f.name or f.key),
            instructions=f.instructions,
            image_url=f.image,
            unit=f.unit,
            min=f.min,
            max=f.max,
        )

    # gating

    def validate(self) -> List[FieldError]:
        errors = validate_measurements(self.fields, self.values)
        self.field_errors = {e.field_id: e for e in errors}
        self.focus_field_id = errors[0].field_id if errors else None
        return errors

    def go_to_review(self) -> bool:
        self._require(*ENTRY_STATES)
        if self.validate():
            if self.state is not WizardState.DETAILS:
                self._transition(WizardState.DETAILS)
            return False
        self.error = None
        self._transition(WizardState.REVIEW)
        return True

    def back_to_details(self) -> None:
        self._require(WizardState.REVIEW)
        self._transition(WizardState.DETAILS)

    def measurements(self) -> Dict[str, float]:
        out = {}
        for key, raw in self.values.items():
            try:
                value = parse_measurement(raw)
            except ValueError:
                continue
            if value is not None:
                out[key] = value
        return out

    def review_rows(self) -> List[ReviewRow]:
        return [
            ReviewRow(
                field_id=f.key,
                label=title_case_label(f.name or f.key),
                value=self.values.get(f.key, ""),
                unit=self.unit,
                required=f.required,
            )
            for f in self.fields
        ]

    # closing

    def has_unsaved_data(self) -> bool:
        if any(str(v).strip() for v in self.values.values()):
            return True
        return bool(self.fit_preference.strip() or self.stitching_notes.strip())

    def request_close(self) -> bool:
        """Close now, or ask for confirmation first when data would be lost."""
        if self.closed:
            return True
        if self.state is not WizardState.COMPLETED and self.has_unsaved_data():
            self.confirm_close_pending = True
            return False
        self._close()
        return True

    def confirm_close(self) -> None:
        if not self.confirm_close_pending:
            raise WizardStateError("No close is waiting for confirmation")
        self._close()

    def cancel_close(self) -> None:
        self.confirm_close_pending = False

    def _close(self) -> None:
        self.confirm_close_pending = False
        self._transition(WizardState.CLOSED)
        self.closed = True
        self.values = {k: "" for k in self.values}
        self.fit_preference = ""
        self.stitching_notes = ""

    # saved profiles

    def open_save_profile(self) -> None:
        self._require(WizardState.REVIEW)
        self.error = None
        self._transition(WizardState.SAVE_PROFILE)

    def cancel_save_profile(self) -> None:
        self._require(WizardState.SAVE_PROFILE)
        self._transition(WizardState.REVIEW)

    def profile_draft(self, name: str) -> Dict[str, Any]:
        chart = self.chart
        return {
            "name": name.strip(),
            "category": chart.category if chart else "custom",
            "measurementFields": list(self._raw_chart.get("measurementFields") or []),
            "fitPreferencesEnabled": bool(chart and chart.fit_preferences_enabled),
            "stitchingNotesEnabled": bool(chart and chart.stitching_notes_enabled),
            "fitPreferences": self._raw_chart.get("fitPreferences") or None,
            "measurements": self.measurements(),
            "fitPreference": self.fit_preference or None,
            "stitchingNotes": self.stitching_notes or None,
        }

    async def save_profile(self, name: str) -> Optional[Dict[str, Any]]:
        self._require(WizardState.SAVE_PROFILE)
        if not name or not name.strip():
            self.error = ValidationError("Please enter a template name")
            return None

        self._begin("save_profile")
        epoch = self.epoch
        try:
            saved = await self.client.save_profile(self.context.shop, self.profile_draft(name))
        except SizeChartError as e:
            if self._is_current(epoch):
                self.error = e
            else:
                self._stale("save_profile", epoch)
            return None
        finally:
            self.pending = None
        if not self._is_current(epoch):
            self._stale("save_profile", epoch)
            return saved
        self.error = None
        self.saved_profile = saved
        self._transition(WizardState.REVIEW)
        return saved

    async def open_previous_profiles(self) -> bool:
        self._require(WizardState.DETAILS)
        self.error = None
        self._transition(WizardState.PREVIOUS_PROFILES)
        epoch = self.epoch
        try:
            profiles = await self.client.list_profiles(self.context.shop)
        except SizeChartError as e:
            if self._is_current(epoch):
                self.error = e
            return False
        if not self._is_current(epoch):
            self._stale("list_profiles", epoch)
            return False
        self.profiles = profiles
        return True

    def close_previous_profiles(self) -> None:
        self._require(WizardState.PREVIOUS_PROFILES)
        self._transition(WizardState.DETAILS)

    def apply_profile(self, profile_id: str) -> None:
        """Copy saved values into matching fields; fields without a value keep theirs."""
        self._require(WizardState.PREVIOUS_PROFILES)
        profile = next((p for p in self.profiles if p.get("id") == profile_id), None)
        if profile is None:
            raise NotFoundError("Template not found", reason="template_missing")

        for key, raw in (profile.get("savedMeasurements") or {}).items():
            if key not in self.values:
                continue
            text = format_measurement(raw)
            if text is not None:
                self.values[key] = text
                self.field_errors.pop(key, None)
        if self.chart and self.chart.fit_preferences_enabled and profile.get("fitPreference"):
            self.fit_preference = profile["fitPreference"]
        if self.chart and self.chart.stitching_notes_enabled and profile.get("stitchingNotes"):
            self.stitching_notes = profile["stitchingNotes"]

        self.scroll_to_top = True
        self._transition(WizardState.DETAILS)

    async def delete_profile(self, profile_id: str) -> bool:
        self._require(WizardState.PREVIOUS_PROFILES)
        self._begin("delete_profile")
        epoch = self.epoch
        try:
            await self.client.delete_profile(self.context.shop, profile_id)
        except NotFoundError:
            pass
        except SizeChartError as e:
            if self._is_current(epoch):
                self.error = e
            return False
        finally:
            self.pending = None
        if not self._is_current(epoch):
            self._stale("delete_profile", epoch)
            return True
        self.profiles = [p for p in self.profiles if p.get("id") != profile_id]
        return True

    # checkout

    def cart_line(self) -> CartLineItem:
        variant_id = self.context.variant_id_provider()
        if variant_id in (None, ""):
            raise VariantNotFoundError()
        try:
            int(variant_id)
        except (TypeError, ValueError):
            raise VariantNotFoundError(f"Variant ID {variant_id!r} is not valid. Please select a size/variant and try again.")
        names = {f.key: f.name for f in self.fields if f.name}
        return CartLineItem.for_custom_order(variant_id, build_cart_properties(self.measurements(), names))

    async def add_to_cart(self) -> bool:
        """Raises ``WizardStateError`` while another write is still in flight."""
        self._require(WizardState.REVIEW)
        if self.pending:
            raise WizardStateError(f"{self.pending} already in progress")
        if self.validate():
            return False
        try:
            line = self.cart_line()
        except VariantNotFoundError as e:
            self.error = e
            return False

        self._begin("add_to_cart")
        epoch = self.epoch
        try:
            await self.client.add_to_cart(line, shop=self.context.shop, product_id=self.context.product_id)
        except SizeChartError as e:
            if self._is_current(epoch):
                self.error = e
                logger.warning("wizard_add_to_cart_failed", shop=self.context.shop, product_id=self.context.product_id, error=e.message)
            else:
                self._stale("add_to_cart", epoch)
            return False
        finally:
            self.pending = None
        if not self._is_current(epoch):
            self._stale("add_to_cart", epoch)
            return True
        self.error = None
        self.checkout_url = CHECKOUT_PATH
        self._transition(WizardState.COMPLETED)
        logger.info("wizard_added_to_cart", shop=self.context.shop, product_id=self.context.product_id, properties=len(line.properties) - 1)
        return True
