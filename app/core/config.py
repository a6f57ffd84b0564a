# app/core/config.py
from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings
from typing import List, Optional

SANDBOX_HOST = "https://sandbox.sslcommerz.com"
LIVE_HOST = "https://securepay.sslcommerz.com"


class Settings(BaseSettings):
    PROJECT_NAME: str = "CommerceFlow Storefront"
    API_PREFIX: str = "/api/sslcommerz"
    APP_ENV: str = "development"

    POSTGRES_USER: str = Field("postgres", validation_alias=AliasChoices("POSTGRES_USER", "DB_USER"))
    POSTGRES_PASSWORD: str = Field("postgres", validation_alias=AliasChoices("POSTGRES_PASSWORD", "DB_PASSWORD"))
    POSTGRES_SERVER: str = Field("localhost", validation_alias=AliasChoices("POSTGRES_SERVER", "DB_HOST"))
    POSTGRES_PORT: str = Field("5432", validation_alias=AliasChoices("POSTGRES_PORT", "DB_PORT"))
    POSTGRES_DB: str = Field("storefront", validation_alias=AliasChoices("POSTGRES_DB", "DB_NAME"))
    # Built from the POSTGRES_* parts when not given
    DATABASE_URL: Optional[str] = None
    # "postgres" or "memory"
    ORDER_STORE_BACKEND: str = "postgres"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:9002"]

    # Public URL of the storefront, used to build gateway callback URLs
    BASE_URL: str = Field("", validation_alias=AliasChoices("BASE_URL", "NEXT_PUBLIC_BASE_URL"))

    SSLCOMMERZ_STORE_ID: str = ""
    SSLCOMMERZ_STORE_PASSWORD: str = ""
    # Defaults to live only when APP_ENV is "production"
    SSLCOMMERZ_IS_LIVE: Optional[bool] = None

    GATEWAY_TIMEOUT_SECONDS: float = 10.0
    GATEWAY_MAX_ATTEMPTS: int = 3
    GATEWAY_RETRY_BACKOFF_SECONDS: float = 0.5

    DEFAULT_CURRENCY: str = "BDT"
    DEFAULT_COUNTRY: str = "Bangladesh"
    DEFAULT_PHONE: str = "01000000000"
    PRODUCT_CATEGORY: str = "Digital Goods"
    PRODUCT_PROFILE: str = "general"

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "storefront.log"
    HOST: str = "0.0.0.0"
    PORT: int = 5100
    SSL_CERTFILE: str = ""
    SSL_KEYFILE: str = ""

    @model_validator(mode="after")
    def _derive_defaults(self):
        if self.SSLCOMMERZ_IS_LIVE is None:
            self.SSLCOMMERZ_IS_LIVE = self.APP_ENV.lower() == "production"
        if not self.DATABASE_URL:
            self.DATABASE_URL = (
                f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )
        return self

    @property
    def gateway_host(self) -> str:
        return LIVE_HOST if self.SSLCOMMERZ_IS_LIVE else SANDBOX_HOST

    @property
    def session_api_url(self) -> str:
        return f"{self.gateway_host}/gwprocess/v4/api.php"

    @property
    def validation_api_url(self) -> str:
        return f"{self.gateway_host}/validator/api/validationserverAPI.php"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
