"""Chart resolution for storefront requests."""
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..models import SizeChartProductAssignment, SizeChartTemplate
from ..schemas.chart import ChartKind
from .classifier import classify, parse_chart_data
from .storage_urls import normalize_chart_data_urls


logger = structlog.get_logger("sizechart")

REASON_NO_ASSIGNMENT = "no_assignment"
REASON_TEMPLATE_INACTIVE = "template_inactive"
REASON_TEMPLATE_MISSING = "template_missing"

ARRAY_KEYS = ("sizeData", "columns", "measurementFields")


def normalize_product_id(product_id: Any) -> str:
    """``gid://shopify/Product/123`` and ``123`` both become ``"123"``."""
    value = str(product_id).strip()
    if "/" in value:
        value = value.split("/")[-1]
    return value


def shop_variants(shop: str) -> List[str]:
    """Both the bare handle and the full domain; storage uses either."""
    shop = shop.strip()
    if "." in shop:
        return [shop, shop.split(".")[0]]
    return [shop, f"{shop}{settings.shop_domain_suffix}"]


@dataclass
class ResolvedChart:
    template: SizeChartTemplate
    kind: ChartKind
    chart_data: Dict[str, Any]
    product_name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        description = self.template.description or ""
        return {
            "hasChart": True,
            "productName": self.product_name,
            "template": {
                "id": self.template.id,
                "name": self.template.name,
                "description": description,
                "chartData": self.chart_data,
                "measurementFile": self.chart_data.get("measurementFile") or None,
                "rawDescription": description,
            },
        }


@dataclass
class ChartNotFound:
    reason: str
    kind: Optional[ChartKind] = None
    checked_assignments: int = 0

    MESSAGES = {
        REASON_NO_ASSIGNMENT: "No size chart found for this product",
        REASON_TEMPLATE_INACTIVE: "Size chart template is not active",
        REASON_TEMPLATE_MISSING: "Size chart template not found",
    }

    @property
    def message(self) -> str:
        return self.MESSAGES.get(self.reason, "No size chart found for this product")


def public_chart_data(raw: Any) -> Dict[str, Any]:
    """Storefront copy of a blob: https URLs only and list keys always present."""
    data = normalize_chart_data_urls(copy.deepcopy(parse_chart_data(raw)))
    for key in ARRAY_KEYS:
        if not isinstance(data.get(key), list):
            data[key] = []
    return data


@dataclass
class ChartResolver:
    session: Session
    _templates: Dict[str, Optional[SizeChartTemplate]] = field(default_factory=dict, init=False)

    def assignments_for(self, shop: str, product_id: Any) -> List[SizeChartProductAssignment]:
        stmt = (
            select(SizeChartProductAssignment)
            .where(
                SizeChartProductAssignment.shop.in_(shop_variants(shop)),
                SizeChartProductAssignment.product_id == normalize_product_id(product_id),
            )
            .order_by(SizeChartProductAssignment.id)
        )
        return list(self.session.scalars(stmt))

    def _template(self, template_id: str) -> Optional[SizeChartTemplate]:
        if template_id not in self._templates:
            self._templates[template_id] = self.session.get(SizeChartTemplate, template_id)
        return self._templates[template_id]

    def resolve(self, shop: str, product_id: Any, kind: Optional[ChartKind] = None) -> ResolvedChart | ChartNotFound:
        assignments = self.assignments_for(shop, product_id)
        saw_inactive = False
        saw_missing = False

        for assignment in assignments:
            template = self._template(assignment.template_id)
            if template is None:
                saw_missing = True
                continue
            template_kind = classify(template.chart_data)
            if kind is not None and template_kind is not kind:
                continue
            if not template.active:
                saw_inactive = True
                continue
            logger.info(
                "chart_resolved",
                shop=shop,
                product_id=assignment.product_id,
                template_id=template.id,
                kind=template_kind.value,
            )
            return ResolvedChart(
                template=template,
                kind=template_kind,
                chart_data=public_chart_data(template.chart_data),
                product_name=assignment.product_title,
            )

        if saw_inactive:
            reason = REASON_TEMPLATE_INACTIVE
        elif saw_missing:
            reason = REASON_TEMPLATE_MISSING
        else:
            reason = REASON_NO_ASSIGNMENT
        logger.info("chart_not_found", shop=shop, product_id=str(product_id), kind=kind.value if kind else None, reason=reason, assignments=len(assignments))
        return ChartNotFound(reason=reason, kind=kind, checked_assignments=len(assignments))

    def available_kinds(self, shop: str, product_id: Any) -> Dict[str, bool]:
        has_table = False
        has_custom = False
        for assignment in self.assignments_for(shop, product_id):
            template = self._template(assignment.template_id)
            if template is None or not template.active:
                continue
            if classify(template.chart_data) is ChartKind.CUSTOM:
                has_custom = True
            else:
                has_table = True
        return {"hasTableTemplate": has_table, "hasCustomTemplate": has_custom}
