import json
from typing import Any, Dict, List, Optional

import httpx
import structlog

from ..config import settings
from ..errors import DuplicateNameError, NotFoundError, UpstreamError, ValidationError
from .cart import CartLineItem


logger = structlog.get_logger("sizechart")


def _json_field(resp: httpx.Response, key: str) -> Any:
    try:
        body = resp.json()
    except ValueError:
        return None
    return body.get(key) if isinstance(body, dict) else None


def _error_message(resp: httpx.Response, fallback: str) -> str:
    for key in ("error", "description", "message"):
        value = _json_field(resp, key)
        if value:
            return str(value)
    return fallback


class StorefrontClient:
    """HTTP calls the measurement wizard makes from the product page.

    ``app_url`` is this service; ``store_url`` is the shop's storefront that
    owns the cart endpoint.
    """

    def __init__(self, store_url: str, app_url: str | None = None, timeout: float | None = None) -> None:
        self.app_base = (app_url or settings.app_url).rstrip("/")
        self.store_base = store_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds

    async def _send(self, method: str, url: str, shop: str | None = None, product_id: str | None = None, **kwargs: Any) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("storefront_request_failed", url=url, shop=shop, product_id=product_id, error=str(e))
            raise UpstreamError(
                "Unable to reach the size chart service. Please check your connection and try again.",
                url=url,
                shop=shop,
                product_id=product_id,
            ) from e

    def _raise_for_upstream(self, resp: httpx.Response, message: str, shop: str | None = None, product_id: str | None = None) -> None:
        if resp.status_code not in (200, 201):
            raise UpstreamError(
                _error_message(resp, message),
                url=str(resp.request.url),
                shop=shop,
                product_id=product_id,
                upstream_status=resp.status_code,
            )

    async def fetch_chart(self, shop: str, product_id: str, kind: str | None = None) -> Dict[str, Any]:
        params = {"shop": shop, "productId": product_id}
        if kind:
            params["templateType"] = kind
        resp = await self._send("GET", f"{self.app_base}/size-chart/public", shop=shop, product_id=product_id, params=params)
        if resp.status_code == 404:
            raise NotFoundError(
                _error_message(resp, "No size chart found for this product"),
                reason=_json_field(resp, "reason"),
            )
        if resp.status_code == 400:
            raise ValidationError(_error_message(resp, "Shop and productId parameters required"))
        self._raise_for_upstream(resp, "Failed to load size chart", shop=shop, product_id=product_id)
        body = resp.json()
        if not body.get("hasChart") or not isinstance(body.get("template"), dict):
            raise NotFoundError("No size chart found for this product", reason=body.get("reason"))
        return body

    async def list_profiles(self, shop: str) -> List[Dict[str, Any]]:
        resp = await self._send("GET", f"{self.app_base}/measurement-template/public", shop=shop, params={"shop": shop})
        self._raise_for_upstream(resp, "Failed to load templates", shop=shop)
        return list(resp.json().get("templates") or [])

    async def save_profile(self, shop: str, draft: Dict[str, Any]) -> Dict[str, Any]:
        resp = await self._send(
            "POST",
            f"{self.app_base}/measurement-template/public",
            shop=shop,
            params={"shop": shop},
            files={"template": (None, json.dumps(draft))},
        )
        if resp.status_code == 400:
            message = _error_message(resp, "Failed to save template")
            if "already exists" in message:
                name = (draft.get("name") or "").strip()
                raise DuplicateNameError(name)
            raise ValidationError(message)
        self._raise_for_upstream(resp, "Failed to save template", shop=shop)
        return resp.json().get("template") or {}

    async def delete_profile(self, shop: str, template_id: str) -> None:
        resp = await self._send(
            "DELETE",
            f"{self.app_base}/measurement-template/public",
            shop=shop,
            params={"shop": shop, "id": template_id},
        )
        if resp.status_code == 404:
            raise NotFoundError(_error_message(resp, "Template not found"), reason="template_missing")
        self._raise_for_upstream(resp, "Failed to delete template", shop=shop)

    async def add_to_cart(self, line: CartLineItem, shop: Optional[str] = None, product_id: Optional[str] = None) -> Dict[str, Any]:
        resp = await self._send(
            "POST",
            f"{self.store_base}/cart/add.js",
            shop=shop,
            product_id=product_id,
            json=line.to_payload(),
        )
        self._raise_for_upstream(resp, "Failed to add product to cart", shop=shop, product_id=product_id)
        return resp.json()
