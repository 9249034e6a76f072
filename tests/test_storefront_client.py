import httpx
import pytest

from sizechart.errors import DuplicateNameError, NotFoundError, UpstreamError, ValidationError
from sizechart.services.cart import CartLineItem
from sizechart.services.storefront_client import StorefrontClient

client = StorefrontClient("https://s1.myshopify.com/", app_url="http://app.test/")


@pytest.mark.asyncio
async def test_fetch_chart_connection_error_keeps_context(respx_mock):
    respx_mock.get(host="app.test", path="/size-chart/public").mock(side_effect=httpx.ConnectTimeout("timed out"))
    with pytest.raises(UpstreamError) as err:
        await client.fetch_chart("s1", "123", kind="table")
    assert err.value.url == "http://app.test/size-chart/public"
    assert err.value.diagnostics == "url=http://app.test/size-chart/public, shop=s1, product_id=123"


@pytest.mark.asyncio
async def test_fetch_chart_server_error(respx_mock):
    respx_mock.get(host="app.test", path="/size-chart/public").mock(
        return_value=httpx.Response(500, json={"error": "Database error"})
    )
    with pytest.raises(UpstreamError) as err:
        await client.fetch_chart("s1", "123")
    assert err.value.message == "Database error"
    assert err.value.upstream_status == 500
    assert "productId=123" in err.value.url


@pytest.mark.asyncio
async def test_fetch_chart_not_found_reason(respx_mock):
    respx_mock.get(host="app.test", path="/size-chart/public").mock(
        return_value=httpx.Response(404, json={"error": "No size chart assigned to this product", "hasChart": False, "reason": "no_assignment"})
    )
    with pytest.raises(NotFoundError) as err:
        await client.fetch_chart("s1", "123")
    assert err.value.reason == "no_assignment"


@pytest.mark.asyncio
async def test_fetch_chart_bad_request(respx_mock):
    respx_mock.get(host="app.test", path="/size-chart/public").mock(
        return_value=httpx.Response(400, json={"error": "Shop and productId parameters required", "hasChart": False})
    )
    with pytest.raises(ValidationError):
        await client.fetch_chart("s1", "")


@pytest.mark.asyncio
async def test_save_profile_errors(respx_mock):
    route = respx_mock.post(host="app.test", path="/measurement-template/public")
    route.side_effect = [
        httpx.Response(400, json={"error": 'A template with the name "A" already exists. Please use a different name.'}),
        httpx.Response(400, json={"error": "Template name is required"}),
    ]
    with pytest.raises(DuplicateNameError) as err:
        await client.save_profile("s1", {"name": " A ", "measurementFields": []})
    assert err.value.name == "A"
    with pytest.raises(ValidationError) as err:
        await client.save_profile("s1", {"name": "", "measurementFields": []})
    assert not isinstance(err.value, DuplicateNameError)


@pytest.mark.asyncio
async def test_list_and_delete_profiles(respx_mock):
    respx_mock.get(host="app.test", path="/measurement-template/public").mock(
        return_value=httpx.Response(200, json={"success": True, "templates": [{"id": "p1"}]})
    )
    respx_mock.delete(host="app.test", path="/measurement-template/public").mock(
        return_value=httpx.Response(404, json={"error": "Template not found"})
    )
    assert await client.list_profiles("s1") == [{"id": "p1"}]
    with pytest.raises(NotFoundError):
        await client.delete_profile("s1", "p1")


@pytest.mark.asyncio
async def test_add_to_cart_posts_line_item(respx_mock):
    route = respx_mock.post("https://s1.myshopify.com/cart/add.js").mock(
        return_value=httpx.Response(200, json={"id": 99, "quantity": 1})
    )
    line = CartLineItem.for_custom_order("99", {"Chest": "40"})
    assert await client.add_to_cart(line, shop="s1", product_id="123") == {"id": 99, "quantity": 1}
    assert route.calls.last.request.headers["content-type"] == "application/json"
