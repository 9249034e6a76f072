from sizechart.config import settings
from sizechart.services.storage_urls import get_s3_url, normalize_chart_data_urls


def test_https_url_is_unchanged():
    url = "https://cdn.example.com/images/a.png"
    assert get_s3_url(url) == url
    assert normalize_chart_data_urls({"guideImage": url}) == {"guideImage": url}


def test_s3_url_for_configured_bucket():
    assert get_s3_url("s3://charts-bucket/images/2024/01/a.png") == "https://charts-bucket.s3.eu-west-1.amazonaws.com/images/2024/01/a.png"


def test_bare_key_is_prefixed():
    assert get_s3_url("images/a.png") == "https://charts-bucket.s3.eu-west-1.amazonaws.com/images/a.png"


def test_normalize_walks_nested_structures_without_mutating():
    data = {
        "measurementFields": [{"id": "chest", "guideImageUrl": "s3://charts-bucket/images/c.png"}],
        "notes": ["s3://charts-bucket/images/n.png", "plain text"],
        "measurementFile": "images/m.pdf",
        "count": 3,
    }
    out = normalize_chart_data_urls(data)
    assert out["measurementFields"][0]["guideImageUrl"].startswith("https://charts-bucket.s3.")
    assert out["notes"] == ["https://charts-bucket.s3.eu-west-1.amazonaws.com/images/n.png", "plain text"]
    assert out["measurementFile"] == "https://charts-bucket.s3.eu-west-1.amazonaws.com/images/m.pdf"
    assert out["count"] == 3
    assert data["measurementFields"][0]["guideImageUrl"] == "s3://charts-bucket/images/c.png"



def test_without_bucket_references_pass_through(monkeypatch):
    monkeypatch.setattr(settings, "s3_bucket", None)
    assert get_s3_url("s3://charts-bucket/images/a.png") == "s3://charts-bucket/images/a.png"
    assert get_s3_url("images/a.png") == "images/a.png"
    assert get_s3_url("images/a.png", bucket="other") == "https://other.s3.eu-west-1.amazonaws.com/images/a.png"
