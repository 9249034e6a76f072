"""Merchant-side product assignment writes.

At most one assignment per (shop, product, kind) is kept by deleting the
other same-kind assignments before inserting. The two steps are separate
statements, so concurrent assigns for the same product can briefly leave two
same-kind rows; the resolver then picks the first in stored order.
"""
from typing import Any, List, Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..errors import NotFoundError, ValidationError
from ..models import SizeChartProductAssignment, SizeChartTemplate
from ..schemas.chart import ChartKind
from .classifier import classify
from .resolver import normalize_product_id


logger = structlog.get_logger("sizechart")


def _same_kind_template_ids(session: Session, shop: str, kind: ChartKind) -> List[str]:
    rows = session.execute(select(SizeChartTemplate.id, SizeChartTemplate.chart_data).where(SizeChartTemplate.shop == shop))
    return [tid for tid, chart_data in rows if classify(chart_data) is kind]


def assign(session: Session, shop: str, product_id: Any, template_id: str, product_title: Optional[str] = None) -> SizeChartProductAssignment:
    numeric_id = normalize_product_id(product_id)
    if not numeric_id:
        raise ValidationError("Product ID is required")

    template = session.get(SizeChartTemplate, template_id)
    if template is None or template.shop != shop:
        raise NotFoundError("Template not found", reason="template_missing")
    kind = classify(template.chart_data)

    same_kind = [tid for tid in _same_kind_template_ids(session, shop, kind) if tid != template_id]
    if same_kind:
        result = session.execute(
            delete(SizeChartProductAssignment).where(
                SizeChartProductAssignment.shop == shop,
                SizeChartProductAssignment.product_id == numeric_id,
                SizeChartProductAssignment.template_id.in_(same_kind),
            )
        )
        if result.rowcount:
            logger.info("assignments_replaced", shop=shop, product_id=numeric_id, kind=kind.value, removed=result.rowcount)
    session.commit()

    existing = session.scalars(
        select(SizeChartProductAssignment).where(
            SizeChartProductAssignment.shop == shop,
            SizeChartProductAssignment.product_id == numeric_id,
            SizeChartProductAssignment.template_id == template_id,
        )
    ).first()
    if existing is not None:
        if product_title and existing.product_title != product_title:
            existing.product_title = product_title
            session.commit()
        return existing

    assignment = SizeChartProductAssignment(
        shop=shop,
        product_id=numeric_id,
        product_title=product_title,
        template_id=template_id,
    )
    session.add(assignment)
    session.commit()
    logger.info("assignment_created", shop=shop, product_id=numeric_id, template_id=template_id, kind=kind.value)
    return assignment


def unassign(session: Session, shop: str, product_id: Any, template_id: Optional[str] = None, kind: Optional[ChartKind] = None) -> int:
    """Remove by template or by chart kind. Returns the number of rows deleted."""
    if not template_id and kind is None:
        raise ValidationError("Either Template ID or Chart Type is required")
    numeric_id = normalize_product_id(product_id)

    if template_id:
        template_ids = [template_id]
    else:
        template_ids = _same_kind_template_ids(session, shop, kind)
    if not template_ids:
        return 0

    result = session.execute(
        delete(SizeChartProductAssignment).where(
            SizeChartProductAssignment.shop == shop,
            SizeChartProductAssignment.product_id == numeric_id,
            SizeChartProductAssignment.template_id.in_(template_ids),
        )
    )
    session.commit()
    logger.info("assignments_removed", shop=shop, product_id=numeric_id, removed=result.rowcount)
    return result.rowcount


def list_for_product(session: Session, shop: str, product_id: Any) -> List[SizeChartProductAssignment]:
    stmt = (
        select(SizeChartProductAssignment)
        .where(SizeChartProductAssignment.shop == shop, SizeChartProductAssignment.product_id == normalize_product_id(product_id))
        .order_by(SizeChartProductAssignment.id)
    )
    return list(session.scalars(stmt))
