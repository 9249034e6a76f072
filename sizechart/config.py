import os
from pydantic import BaseModel


class Settings(BaseModel):
    app_env: str = os.getenv("APP_ENV", "production")

    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./sizechart.db")

    api_key: str = os.getenv("API_KEY", "change-me")

    # JWT (merchant sessions, sub = shop domain)
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret")
    jwt_audience: str | None = os.getenv("JWT_AUDIENCE")
    jwt_issuer: str | None = os.getenv("JWT_ISSUER")
    jwt_ttl_seconds: int = int(os.getenv("JWT_TTL_SECONDS", "3600"))

    # Rate limit (token bucket, per client ip)
    rate_limit_per_min: int = int(os.getenv("RATE_LIMIT_PER_MIN", "120"))
    rate_limit_burst: int = int(os.getenv("RATE_LIMIT_BURST", "60"))

    # Object storage
    s3_bucket: str | None = os.getenv("AWS_S3_BUCKET_NAME")
    aws_region: str = os.getenv("AWS_REGION", "us-east-1")

    shop_domain_suffix: str = os.getenv("SHOP_DOMAIN_SUFFIX", ".myshopify.com")

    # Storefront wizard client
    app_url: str = os.getenv("APP_URL", "http://localhost:8000")
    http_timeout_seconds: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"


settings = Settings()
