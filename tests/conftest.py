import json
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_BURST", "100000")
os.environ.setdefault("AWS_S3_BUCKET_NAME", "charts-bucket")
os.environ.setdefault("AWS_REGION", "eu-west-1")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sizechart.config import settings
from sizechart.db import Base, get_session, init_db
from sizechart.main import app
from sizechart.models import SizeChartProductAssignment, SizeChartTemplate


@pytest.fixture()
def session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture()
def client(session_factory):
    def _override():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_session] = _override
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def storage_settings():
    bucket, region = settings.s3_bucket, settings.aws_region
    settings.s3_bucket = "charts-bucket"
    settings.aws_region = "eu-west-1"
    yield
    settings.s3_bucket, settings.aws_region = bucket, region


def make_template(session, shop, name, chart_data, active=True, description=""):
    template = SizeChartTemplate(
        shop=shop,
        name=name,
        description=description,
        chart_data=chart_data if isinstance(chart_data, str) else json.dumps(chart_data),
        active=active,
    )
    session.add(template)
    session.commit()
    return template


def make_assignment(session, shop, product_id, template_id, title=None):
    row = SizeChartProductAssignment(shop=shop, product_id=str(product_id), template_id=template_id, product_title=title)
    session.add(row)
    session.commit()
    return row


TABLE_CHART = {
    "columns": [{"id": "chest", "label": "Chest"}, {"id": "waist", "label": "Waist"}],
    "sizeData": [{"size": "S", "chest": "36", "waist": "30"}, {"size": "M", "chest": "38"}],
}

CUSTOM_CHART = {
    "isMeasurementTemplate": True,
    "measurementFields": [
        {"id": "chest", "name": "chest / bust", "required": True, "enabled": True, "min": 20, "max": 60, "unit": "in", "order": 1},
        {"id": "waist", "name": "waist", "required": False, "enabled": True, "unit": "in", "order": 2,
         "guideImage": "s3://charts-bucket/images/guideimages/waist.png"},
    ],
    "fitPreferencesEnabled": True,
    "stitchingNotesEnabled": True,
}
