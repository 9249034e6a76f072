from conftest import CUSTOM_CHART, TABLE_CHART, make_assignment, make_template

from sizechart.config import settings


def test_custom_chart_end_to_end(client, session):
    custom = make_template(session, "s1", "Made to measure", CUSTOM_CHART)
    make_assignment(session, "s1", "123", custom.id)

    r = client.get(
        "/size-chart/public",
        params={"shop": "s1", "productId": "123", "templateType": "custom"},
        headers={"Origin": "https://s1.myshopify.com"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["hasChart"] is True
    chart = body["template"]["chartData"]
    assert [f["id"] for f in chart["measurementFields"]] == ["chest", "waist"]
    assert chart["sizeData"] == []
    assert chart["columns"] == []
    assert r.headers["access-control-allow-origin"] == "*"


def test_table_chart_by_gid(client, session):
    table = make_template(session, "s1", "Shirts", TABLE_CHART, description="Regular fit")
    make_assignment(session, "s1", "123", table.id, title="Oxford Shirt")

    r = client.get("/size-chart/public", params={"shop": "s1.myshopify.com", "productId": "gid://shopify/Product/123", "templateType": "table"})
    assert r.status_code == 200
    body = r.json()
    assert body["productName"] == "Oxford Shirt"
    assert body["template"]["description"] == "Regular fit"
    assert body["template"]["chartData"]["measurementFields"] == []
    assert body["template"]["measurementFile"] is None


def test_missing_params(client):
    r = client.get("/size-chart/public", params={"shop": "s1"})
    assert r.status_code == 400
    assert r.json() == {"error": "Shop and productId parameters required", "hasChart": False}


def test_not_found_carries_reason(client, session):
    template = make_template(session, "s1", "Off", TABLE_CHART, active=False)
    make_assignment(session, "s1", "123", template.id)

    r = client.get("/size-chart/public", params={"shop": "s1", "productId": "123"})
    assert r.status_code == 404
    assert r.json()["reason"] == "template_inactive"
    assert r.json()["hasChart"] is False

    r = client.get("/size-chart/public", params={"shop": "s1", "productId": "555"})
    assert r.status_code == 404
    assert r.json()["reason"] == "no_assignment"


def test_preflight_is_cors_open(client):
    r = client.options(
        "/size-chart/public",
        headers={"Origin": "https://s1.myshopify.com", "Access-Control-Request-Method": "GET"},
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"


def test_chart_types(client, session):
    table = make_template(session, "s1", "Table", TABLE_CHART)
    custom = make_template(session, "s1", "Custom", CUSTOM_CHART)
    make_assignment(session, "s1", "123", table.id)
    make_assignment(session, "s1", "123", custom.id)

    r = client.get("/size-chart-types/public", params={"shop": "s1", "productId": "123"})
    assert r.json() == {"hasTableTemplate": True, "hasCustomTemplate": True}

    r = client.get("/size-chart-types/public", params={"shop": "s1"})
    assert r.status_code == 400
    assert r.json()["hasCustomTemplate"] is False


def test_unexpected_error_details_only_in_development(session_factory, monkeypatch):
    from fastapi.testclient import TestClient

    from sizechart.db import get_session
    from sizechart.main import app

    def _broken():
        raise RuntimeError("boom")
        yield  # pragma: no cover

    app.dependency_overrides[get_session] = _broken
    client = TestClient(app, raise_server_exceptions=False)
    try:
        monkeypatch.setattr(settings, "app_env", "production")
        r = client.get("/size-chart/public", params={"shop": "s1", "productId": "1"})
        assert r.status_code == 500
        assert "details" not in r.json()

        monkeypatch.setattr(settings, "app_env", "development")
        r = client.get("/size-chart/public", params={"shop": "s1", "productId": "1"})
        assert r.status_code == 500
        assert "boom" in r.json()["details"]
    finally:
        app.dependency_overrides.clear()
