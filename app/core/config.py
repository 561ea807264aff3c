from typing import Annotated, List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    # Application Information
    app_name: str = Field(default="Course Marketplace")
    app_description: str = Field(default="Online course marketplace API")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=True)
    production: bool = Field(default=False)

    # Database Configuration
    database_url: Optional[str] = Field(default=None)
    db_host: str = Field(default="127.0.0.1")
    db_port: int = Field(default=5432)
    db_database: str = Field(default="course-marketplace")
    db_username: str = Field(default="postgres")
    db_password: str = Field(default="postgres")

    # Security Settings
    # The first origin doubles as the fallback for unknown callers
    cors_allowed_origins: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:5173"]
    )
    cors_allowed_headers: Annotated[List[str], NoDecode] = Field(
        default=["authorization", "x-client-info", "apikey", "content-type"]
    )

    # Identity provider (access tokens are issued by the external auth service)
    auth_jwt_secret: str = Field(default="your-auth-jwt-secret-change-in-production")
    auth_jwt_algorithm: str = Field(default="HS256")
    auth_jwt_audience: str = Field(default="authenticated")

    # Admin Defaults
    admin_user_ids: Annotated[List[str], NoDecode] = Field(default=[])

    # Payment
    stripe_secret_key: str = Field(default="")
    stripe_webhook_secret: str = Field(default="")
    stripe_api_version: str = Field(default="2024-06-20")
    stripe_webhook_tolerance: int = Field(default=300)

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_storage_uri: str = Field(default="memory://")
    rate_limit_default: str = Field(default="100/minute")
    checkout_rate_limit: str = Field(default="10/minute")

    # Logging
    log_level: str = Field(default="info")
    log_file: str = Field(default="logs/app.log")

    # ============================
    # Generic comma-separated parser
    # ============================
    @staticmethod
    def _parse_csv(value, default):
        if isinstance(value, str):
            items = [x.strip() for x in value.split(",") if x.strip()]
            return items if items else default
        if isinstance(value, list):
            return value
        return default

    @field_validator("cors_allowed_origins", mode="before")
    def validate_cors(cls, v):
        return cls._parse_csv(v, ["http://localhost:5173"])

    @field_validator("cors_allowed_headers", mode="before")
    def validate_cors_headers(cls, v):
        return cls._parse_csv(
            v, ["authorization", "x-client-info", "apikey", "content-type"]
        )

    @field_validator("admin_user_ids", mode="before")
    def validate_admin_user_ids(cls, v):
        return cls._parse_csv(v, [])

    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return "postgresql+psycopg2://{user}:{password}@{host}:{port}/{database}".format(
            user=self.db_username,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_database,
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


def load_settings():
    try:
        settings = Settings()
        print("✅ Settings loaded successfully!")
        return settings
    except ValidationError as e:
        print("❌ Validation Error:", e)
        raise


settings = load_settings()
