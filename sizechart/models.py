"""Stored size chart templates and their product assignments."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from .db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class SizeChartTemplate(Base):
    """A named chart definition.

    ``chart_data`` is the free-form JSON blob; table vs measurement is decided
    by ``services.classifier``, never by a column here.
    """

    __tablename__ = "size_chart_templates"

    id = Column(String(32), primary_key=True, default=_new_id)
    shop = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    gender = Column(String(32), nullable=True)
    category = Column(String(64), nullable=True)
    chart_data = Column(Text, nullable=False, default="{}")
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<SizeChartTemplate(id={self.id}, shop={self.shop}, name={self.name!r}, active={self.active})>"


class SizeChartProductAssignment(Base):
    """Links one product of a shop to one template.

    Ordering by ``id`` is the stored order the resolver scans in.
    """

    __tablename__ = "size_chart_product_assignments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    shop = Column(String(255), nullable=False, index=True)
    product_id = Column(String(64), nullable=False, index=True)
    product_title = Column(String(512), nullable=True)
    template_id = Column(String(32), ForeignKey("size_chart_templates.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<SizeChartProductAssignment(id={self.id}, product={self.product_id}, template={self.template_id})>"
