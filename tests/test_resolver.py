from conftest import CUSTOM_CHART, TABLE_CHART, make_assignment, make_template

from sizechart.schemas.chart import ChartKind
from sizechart.services.resolver import (
    REASON_NO_ASSIGNMENT,
    REASON_TEMPLATE_INACTIVE,
    REASON_TEMPLATE_MISSING,
    ChartNotFound,
    ChartResolver,
    ResolvedChart,
    normalize_product_id,
    shop_variants,
)


def test_normalize_product_id():
    assert normalize_product_id("gid://shopify/Product/123") == "123"
    assert normalize_product_id(123) == "123"


def test_shop_variants():
    assert shop_variants("s1") == ["s1", "s1.myshopify.com"]
    assert shop_variants("s1.myshopify.com") == ["s1.myshopify.com", "s1"]


def test_requested_kind_never_returns_other_kind(session):
    table = make_template(session, "s1", "Table", TABLE_CHART)
    custom = make_template(session, "s1", "Custom", CUSTOM_CHART)
    make_assignment(session, "s1", "123", table.id)
    make_assignment(session, "s1", "123", custom.id)

    resolver = ChartResolver(session)
    as_table = resolver.resolve("s1", "123", ChartKind.TABLE)
    as_custom = resolver.resolve("s1", "123", ChartKind.CUSTOM)
    assert isinstance(as_table, ResolvedChart) and as_table.template.id == table.id
    assert isinstance(as_custom, ResolvedChart) and as_custom.template.id == custom.id
    assert as_custom.kind is ChartKind.CUSTOM


def test_without_kind_first_active_wins(session):
    inactive = make_template(session, "s1", "Old", TABLE_CHART, active=False)
    custom = make_template(session, "s1", "Custom", CUSTOM_CHART)
    make_assignment(session, "s1", "123", inactive.id)
    make_assignment(session, "s1", "123", custom.id)

    result = ChartResolver(session).resolve("s1", "gid://shopify/Product/123")
    assert isinstance(result, ResolvedChart)
    assert result.template.id == custom.id


def test_inactive_template_reason(session):
    template = make_template(session, "s1", "Off", CUSTOM_CHART, active=False)
    make_assignment(session, "s1", "123", template.id)

    result = ChartResolver(session).resolve("s1", "123", ChartKind.CUSTOM)
    assert isinstance(result, ChartNotFound)
    assert result.reason == REASON_TEMPLATE_INACTIVE


def test_missing_template_and_no_assignment(session):
    make_assignment(session, "s1", "123", "doesnotexist")
    resolver = ChartResolver(session)
    assert resolver.resolve("s1", "123").reason == REASON_TEMPLATE_MISSING
    assert resolver.resolve("s1", "999").reason == REASON_NO_ASSIGNMENT


def test_wrong_kind_only_is_no_assignment(session):
    table = make_template(session, "s1", "Table", TABLE_CHART)
    make_assignment(session, "s1", "123", table.id)
    result = ChartResolver(session).resolve("s1", "123", ChartKind.CUSTOM)
    assert result.reason == REASON_NO_ASSIGNMENT


def test_shop_stored_as_full_domain(session):
    table = make_template(session, "s1.myshopify.com", "Table", TABLE_CHART)
    make_assignment(session, "s1.myshopify.com", "123", table.id)
    assert isinstance(ChartResolver(session).resolve("s1", "123"), ResolvedChart)


def test_payload_contract(session):
    custom = make_template(session, "s1", "Custom", CUSTOM_CHART)
    make_assignment(session, "s1", "123", custom.id, title="Tailored Shirt")
    payload = ChartResolver(session).resolve("s1", "123", ChartKind.CUSTOM).to_payload()

    chart = payload["template"]["chartData"]
    assert payload["hasChart"] is True
    assert payload["productName"] == "Tailored Shirt"
    assert chart["sizeData"] == [] and chart["columns"] == []
    assert len(chart["measurementFields"]) == 2
    assert chart["measurementFields"][1]["guideImage"] == "https://charts-bucket.s3.eu-west-1.amazonaws.com/images/guideimages/waist.png"


def test_malformed_chart_data_resolves_as_empty_table(session):
    broken = make_template(session, "s1", "Broken", "{not json")
    make_assignment(session, "s1", "123", broken.id)
    result = ChartResolver(session).resolve("s1", "123", ChartKind.TABLE)
    assert isinstance(result, ResolvedChart)
    assert result.chart_data == {"sizeData": [], "columns": [], "measurementFields": []}


def test_available_kinds(session):
    table = make_template(session, "s1", "Table", TABLE_CHART)
    custom = make_template(session, "s1", "Custom", CUSTOM_CHART, active=False)
    make_assignment(session, "s1", "123", table.id)
    make_assignment(session, "s1", "123", custom.id)
    assert ChartResolver(session).available_kinds("s1", "123") == {"hasTableTemplate": True, "hasCustomTemplate": False}
