from typing import List, Optional

from fastapi import APIRouter, Depends, Form, Query
from sqlalchemy.orm import Session

from ..db import get_session
from ..errors import NotFoundError, ValidationError
from ..schemas.api import AssignmentOut, AssignRequest, CreateTemplateRequest, TemplateSummary
from ..security import admin_shop
from ..services import assignments
from ..services.classifier import classify, parse_kind
from ..services.templates import TemplatePersistenceManager
from .measurement_template import parse_template_form


# Merchant surface. The dashboard itself lives elsewhere; these are the calls it makes.
router = APIRouter(tags=["admin"])


def _summary(template) -> TemplateSummary:
    return TemplateSummary(
        id=template.id,
        name=template.name,
        description=template.description or "",
        kind=classify(template.chart_data).value,
        active=template.active,
    )


@router.post("/templates", response_model=TemplateSummary)
def create_template(body: CreateTemplateRequest, shop: str = Depends(admin_shop), session: Session = Depends(get_session)):
    template = TemplatePersistenceManager(session).create_chart(
        shop, body.name, body.chartData, description=body.description, active=body.active
    )
    return _summary(template)


@router.delete("/templates/{template_id}")
def delete_template(template_id: str, shop: str = Depends(admin_shop), session: Session = Depends(get_session)):
    if not TemplatePersistenceManager(session).delete(shop, template_id):
        raise NotFoundError("Template not found", reason="template_missing")
    return {"success": True}


@router.get("/measurement-template")
def load_measurement_template(
    id: Optional[str] = Query(None),
    shop: str = Depends(admin_shop),
    session: Session = Depends(get_session),
):
    if not id:
        raise ValidationError("Template ID required")
    return {"template": TemplatePersistenceManager(session).load_measurement_template(shop, id)}


@router.post("/measurement-template")
def save_measurement_template(
    template: Optional[str] = Form(None),
    id: Optional[str] = Form(None),
    shop: str = Depends(admin_shop),
    session: Session = Depends(get_session),
):
    saved = TemplatePersistenceManager(session).save_measurement_template(shop, parse_template_form(template), template_id=id or None)
    return {"success": True, "template": saved}


def _assignment_out(row) -> AssignmentOut:
    return AssignmentOut(id=row.id, productId=row.product_id, templateId=row.template_id, productTitle=row.product_title)


@router.post("/assignments", response_model=AssignmentOut)
def assign_template(body: AssignRequest, shop: str = Depends(admin_shop), session: Session = Depends(get_session)):
    row = assignments.assign(session, shop, body.productId, body.templateId, product_title=body.productTitle)
    return _assignment_out(row)


@router.get("/assignments", response_model=List[AssignmentOut])
def list_assignments(productId: str = Query(...), shop: str = Depends(admin_shop), session: Session = Depends(get_session)):
    return [_assignment_out(row) for row in assignments.list_for_product(session, shop, productId)]


@router.delete("/assignments")
def remove_assignments(
    productId: str = Query(...),
    templateId: Optional[str] = Query(None),
    chartType: Optional[str] = Query(None),
    shop: str = Depends(admin_shop),
    session: Session = Depends(get_session),
):
    removed = assignments.unassign(session, shop, productId, template_id=templateId, kind=parse_kind(chartType))
    return {"success": True, "deletedCount": removed}
