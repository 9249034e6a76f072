"""Template persistence: buyer saved profiles and merchant measurement templates.

Saved profiles and merchant templates share one table and one blob shape;
profiles are the ones whose blob carries ``savedMeasurements``. Profiles are
keyed by (shop, name) only, so two buyers of the same shop picking the same
name get a duplicate-name error rather than sharing a profile.
"""
import copy
import json
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..errors import DuplicateNameError, NotFoundError, ValidationError
from ..models import SizeChartProductAssignment, SizeChartTemplate
from ..schemas.chart import ChartKind
from .classifier import classify, parse_chart_data
from .storage_urls import normalize_chart_data_urls


logger = structlog.get_logger("sizechart")


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _validated_name(draft: Dict[str, Any]) -> str:
    name = draft.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Template name is required")
    return name.strip()


def _validated_fields(draft: Dict[str, Any]) -> List[Dict[str, Any]]:
    fields = draft.get("measurementFields")
    if not isinstance(fields, list):
        raise ValidationError("Missing required fields: name, measurementFields")
    fields = [f for f in fields if isinstance(f, dict)]
    if not any(f.get("enabled") for f in fields):
        raise ValidationError("At least one measurement field must be enabled")
    return fields


def _is_saved_profile(data: Dict[str, Any]) -> bool:
    return classify(data) is ChartKind.CUSTOM and data.get("savedMeasurements") is not None


def _normalized_fields(fields: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # Copies, so the caller's field dicts keep their stored references
    return [normalize_chart_data_urls(copy.deepcopy(f)) for f in fields]


class TemplatePersistenceManager:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _name_taken(self, shop: str, name: str, exclude_id: Optional[str] = None) -> bool:
        stmt = select(SizeChartTemplate.id).where(SizeChartTemplate.shop == shop, SizeChartTemplate.name == name)
        if exclude_id:
            stmt = stmt.where(SizeChartTemplate.id != exclude_id)
        return self.session.scalars(stmt).first() is not None

    def get(self, shop: str, template_id: str) -> Optional[SizeChartTemplate]:
        template = self.session.get(SizeChartTemplate, template_id)
        if template is None or template.shop != shop:
            return None
        return template

    # Saved profiles

    def create(self, shop: str, draft: Dict[str, Any]) -> Dict[str, Any]:
        if not draft.get("name") or draft.get("measurementFields") is None:
            raise ValidationError("Missing required fields: name, measurementFields")
        name = _validated_name(draft)
        fields = _validated_fields(draft)
        if self._name_taken(shop, name):
            logger.info("template_name_conflict", shop=shop, name=name)
            raise DuplicateNameError(name)

        category = draft.get("category") or "custom"
        stored = {
            "isMeasurementTemplate": True,
            "category": category,
            "measurementFields": fields,
            "fitPreferencesEnabled": bool(draft.get("fitPreferencesEnabled")),
            "stitchingNotesEnabled": bool(draft.get("stitchingNotesEnabled")),
            "fitPreferences": draft.get("fitPreferences") or None,
            "savedMeasurements": draft.get("measurements") or {},
            "fitPreference": draft.get("fitPreference") or None,
            "stitchingNotes": draft.get("stitchingNotes") or None,
        }
        enabled = sum(1 for f in fields if f.get("enabled"))
        template = SizeChartTemplate(
            shop=shop,
            name=name,
            gender="unisex",
            category=category,
            description=f"Measurement template with {enabled} fields",
            chart_data=json.dumps(stored),
            active=True,
        )
        self.session.add(template)
        self.session.commit()
        logger.info("template_created", shop=shop, template_id=template.id, saved_profile=True, enabled_fields=enabled)

        return {
            "id": template.id,
            "name": template.name,
            "category": category,
            "measurementFields": _normalized_fields(fields),
            "fitPreferencesEnabled": stored["fitPreferencesEnabled"],
            "stitchingNotesEnabled": stored["stitchingNotesEnabled"],
        }

    def list(self, shop: str) -> List[Dict[str, Any]]:
        stmt = (
            select(SizeChartTemplate)
            .where(SizeChartTemplate.shop == shop, SizeChartTemplate.active.is_(True))
            .order_by(SizeChartTemplate.updated_at.desc())
        )
        profiles = []
        for template in self.session.scalars(stmt):
            data = parse_chart_data(template.chart_data)
            if not _is_saved_profile(data):
                continue
            data = normalize_chart_data_urls(data)
            profiles.append(
                {
                    "id": template.id,
                    "name": template.name,
                    "category": data.get("category") or "custom",
                    "savedMeasurements": data["savedMeasurements"],
                    "fitPreference": data.get("fitPreference") or None,
                    "stitchingNotes": data.get("stitchingNotes") or None,
                    "createdAt": _iso(template.created_at),
                    "updatedAt": _iso(template.updated_at),
                }
            )
        return profiles

    def get_profile(self, shop: str, template_id: str) -> Optional[SizeChartTemplate]:
        template = self.get(shop, template_id)
        if template is None or not _is_saved_profile(parse_chart_data(template.chart_data)):
            return None
        return template

    def delete_profile(self, shop: str, template_id: str) -> bool:
        """Removes a saved profile only; merchant charts are left alone."""
        template = self.get_profile(shop, template_id)
        if template is None:
            return False
        self.session.delete(template)
        self.session.commit()
        logger.info("template_deleted", shop=shop, template_id=template_id, saved_profile=True)
        return True

    def delete(self, shop: str, template_id: str) -> bool:
        """Idempotent; returns whether a row was removed."""
        template = self.get(shop, template_id)
        if template is None:
            return False
        self.session.execute(
            delete(SizeChartProductAssignment).where(SizeChartProductAssignment.template_id == template_id)
        )
        self.session.delete(template)
        self.session.commit()
        logger.info("template_deleted", shop=shop, template_id=template_id)
        return True

    # Merchant templates

    def create_chart(self, shop: str, name: Any, chart_data: Any, description: Optional[str] = None, active: bool = True) -> SizeChartTemplate:
        name = _validated_name({"name": name})
        if self._name_taken(shop, name):
            raise DuplicateNameError(name)
        data = parse_chart_data(chart_data)
        template = SizeChartTemplate(
            shop=shop,
            name=name,
            description=description or "",
            category=data.get("category"),
            chart_data=json.dumps(data),
            active=active,
        )
        self.session.add(template)
        self.session.commit()
        logger.info("template_created", shop=shop, template_id=template.id, kind=classify(data).value)
        return template

    def load_measurement_template(self, shop: str, template_id: str) -> Dict[str, Any]:
        template = self.get(shop, template_id)
        if template is None:
            raise NotFoundError("Template not found", reason="template_missing")
        data = parse_chart_data(template.chart_data)
        if classify(data) is not ChartKind.CUSTOM and not data.get("measurementFields"):
            raise ValidationError("Not a measurement template")
        return {
            "id": template.id,
            "name": template.name,
            "category": data.get("category") or "custom",
            "measurementFields": normalize_chart_data_urls(data.get("measurementFields") or []),
            "fitPreferencesEnabled": bool(data.get("fitPreferencesEnabled")),
            "stitchingNotesEnabled": bool(data.get("stitchingNotesEnabled")),
            "fitPreferences": data.get("fitPreferences") or None,
            "createdAt": _iso(template.created_at),
            "updatedAt": _iso(template.updated_at),
        }

    def save_measurement_template(self, shop: str, draft: Dict[str, Any], template_id: Optional[str] = None) -> Dict[str, Any]:
        if not draft.get("name") or draft.get("measurementFields") is None:
            raise ValidationError("Missing required fields: name, measurementFields")
        name = _validated_name(draft)
        fields = _validated_fields(draft)
        if self._name_taken(shop, name, exclude_id=template_id):
            raise DuplicateNameError(name)

        category = draft.get("category") or "custom"
        stored = {
            "isMeasurementTemplate": True,
            "category": category,
            "measurementFields": fields,
            "fitPreferencesEnabled": bool(draft.get("fitPreferencesEnabled")),
            "stitchingNotesEnabled": bool(draft.get("stitchingNotesEnabled")),
            "fitPreferences": draft.get("fitPreferences") or None,
        }
        if template_id:
            template = self.get(shop, template_id)
            if template is None:
                raise NotFoundError("Template not found", reason="template_missing")
            template.name = name
            template.category = category
            template.chart_data = json.dumps(stored)
        else:
            enabled = sum(1 for f in fields if f.get("enabled"))
            template = SizeChartTemplate(
                shop=shop,
                name=name,
                gender="unisex",
                category=category,
                description=f"Measurement template with {enabled} fields",
                chart_data=json.dumps(stored),
                active=True,
            )
            self.session.add(template)
        self.session.commit()
        logger.info("measurement_template_saved", shop=shop, template_id=template.id, updated=bool(template_id))
        return {
            "id": template.id,
            "name": template.name,
            "category": category,
            "measurementFields": _normalized_fields(fields),
            "fitPreferencesEnabled": stored["fitPreferencesEnabled"],
            "stitchingNotesEnabled": stored["stitchingNotesEnabled"],
        }
