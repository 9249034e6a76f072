import traceback
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_session
from ..errors import NotFoundError, SizeChartError, ValidationError
from ..schemas.api import ChartTypesResponse
from ..services.classifier import parse_kind
from ..services.resolver import ChartNotFound, ChartResolver


logger = structlog.get_logger("sizechart")

# Storefront endpoints: unauthenticated, CORS-open (see main.py)
router = APIRouter(tags=["size-chart"])


@router.get("/size-chart/public")
def size_chart_public(
    shop: Optional[str] = Query(None),
    productId: Optional[str] = Query(None),
    templateType: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    """Chart for a product page. ``templateType`` is ``table`` or ``custom``."""
    logger.info("size_chart_request", shop=shop, product_id=productId, template_type=templateType)
    if not shop or not productId:
        raise ValidationError("Shop and productId parameters required", hasChart=False)

    try:
        result = ChartResolver(session).resolve(shop, productId, parse_kind(templateType))
    except SQLAlchemyError as e:
        logger.error("size_chart_lookup_failed", shop=shop, product_id=productId, error=str(e), exc_info=True)
        raise SizeChartError(
            "Failed to load size chart",
            hasChart=False,
            details=traceback.format_exc() if settings.is_development else None,
        )

    if isinstance(result, ChartNotFound):
        raise NotFoundError(result.message, reason=result.reason, hasChart=False)
    return result.to_payload()


@router.get("/size-chart-types/public", response_model=ChartTypesResponse)
def size_chart_types_public(
    shop: Optional[str] = Query(None),
    productId: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    """Which chart buttons a product page should show."""
    if not shop or not productId:
        raise ValidationError("Shop and productId parameters required", hasTableTemplate=False, hasCustomTemplate=False)
    return ChartResolver(session).available_kinds(shop, productId)
