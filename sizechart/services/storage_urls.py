"""Object-storage URL normalization.

Stored chart data may reference uploads as ``s3://bucket/key``, as a bare key
or as an https URL. Only https URLs are ever handed to a renderer; the stored
values are left untouched.
"""
from typing import Any

from ..config import settings


URL_KEYS = ("measurementFile", "guideImage", "guideImageUrl")


def get_s3_url(value: Any, bucket: str | None = None, region: str | None = None) -> Any:
    if not value or not isinstance(value, str):
        return value
    if value.startswith("http://") or value.startswith("https://"):
        return value

    bucket = bucket or settings.s3_bucket
    region = region or settings.aws_region
    if not bucket:
        # No bucket configured: hand back the stored reference
        return value
    key = value
    if value.startswith("s3://"):
        parts = value[len("s3://"):].split("/")
        # Path after the bucket segment, whichever bucket it named
        key = "/".join(parts[1:])
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


def normalize_chart_data_urls(data: Any) -> Any:
    """Return a copy of ``data`` with every storage reference turned into https."""
    if isinstance(data, str):
        return get_s3_url(data) if data.startswith("s3://") else data
    if isinstance(data, list):
        return [normalize_chart_data_urls(item) for item in data]
    if isinstance(data, dict):
        out = {}
        for key, value in data.items():
            if key in URL_KEYS or (isinstance(value, str) and value.startswith("s3://")):
                out[key] = get_s3_url(value)
            else:
                out[key] = normalize_chart_data_urls(value)
        return out
    return data

