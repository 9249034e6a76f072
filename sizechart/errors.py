"""Error taxonomy shared by the HTTP surface and the storefront wizard.

Every error carries a human message plus optional extra fields that end up
in the JSON body next to ``error``.
"""
from typing import Any, Dict


class SizeChartError(Exception):
    status_code = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra: Dict[str, Any] = extra

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        payload.update({k: v for k, v in self.extra.items() if v is not None})
        return payload


class ValidationError(SizeChartError):
    """Missing or invalid input. Never coerced silently."""

    status_code = 400


class DuplicateNameError(ValidationError):
    def __init__(self, name: str, **extra: Any) -> None:
        super().__init__(
            f'A template with the name "{name}" already exists. Please use a different name.',
            **extra,
        )
        self.name = name


class VariantNotFoundError(ValidationError):
    def __init__(self, message: str = "Variant ID not found. Please select a size/variant and try again.", **extra: Any) -> None:
        super().__init__(message, **extra)


class NotFoundError(SizeChartError):
    status_code = 404

    def __init__(self, message: str, reason: str | None = None, **extra: Any) -> None:
        super().__init__(message, reason=reason, **extra)
        self.reason = reason


class UpstreamError(SizeChartError):
    """Network, CORS or 5xx failure while talking to the app or the host store.

    Keeps the attempted URL and the shop/product in play so support can
    reproduce the call. Never retried automatically.
    """

    status_code = 502

    def __init__(
        self,
        message: str,
        url: str | None = None,
        shop: str | None = None,
        product_id: str | None = None,
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(message, url=url, shop=shop, product_id=product_id, upstream_status=upstream_status)
        self.url = url
        self.shop = shop
        self.product_id = product_id
        self.upstream_status = upstream_status

    @property
    def diagnostics(self) -> str:
        parts = [f"{k}={v}" for k, v in (("url", self.url), ("shop", self.shop), ("product_id", self.product_id), ("status", self.upstream_status)) if v is not None]
        return ", ".join(parts)


class ParseError(SizeChartError):
    """Malformed stored JSON. Recovered locally, never sent to buyers."""
