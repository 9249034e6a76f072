import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Form, Query
from sqlalchemy.orm import Session

from ..db import get_session
from ..errors import NotFoundError, ValidationError
from ..schemas.api import ProfileListResponse
from ..services.templates import TemplatePersistenceManager


# Buyer saved profiles: unauthenticated, CORS-open
router = APIRouter(prefix="/measurement-template", tags=["measurement-template"])


def _require_shop(shop: Optional[str]) -> str:
    if not shop:
        raise ValidationError("Shop parameter is required")
    return shop


def parse_template_form(raw: Optional[str]) -> Dict[str, Any]:
    try:
        data = json.loads(raw or "{}")
    except ValueError:
        raise ValidationError("template must be a JSON object")
    if not isinstance(data, dict):
        raise ValidationError("template must be a JSON object")
    return data


@router.get("/public", response_model=ProfileListResponse)
def list_profiles(shop: Optional[str] = Query(None), session: Session = Depends(get_session)):
    shop = _require_shop(shop)
    return {"success": True, "templates": TemplatePersistenceManager(session).list(shop)}


@router.post("/public")
def create_profile(
    shop: Optional[str] = Query(None),
    template: Optional[str] = Form(None),
    session: Session = Depends(get_session),
):
    shop = _require_shop(shop)
    saved = TemplatePersistenceManager(session).create(shop, parse_template_form(template))
    return {"success": True, "template": saved}


@router.delete("/public")
def delete_profile(
    shop: Optional[str] = Query(None),
    id: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    shop = _require_shop(shop)
    if not id:
        raise ValidationError("Template ID is required")
    if not TemplatePersistenceManager(session).delete_profile(shop, id):
        raise NotFoundError("Template not found", reason="template_missing")
    return {"success": True, "message": "Template deleted successfully"}
