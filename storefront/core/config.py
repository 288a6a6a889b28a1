from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "https://ecommerce-frontend-taupe-mu.vercel.app",
    "https://onet.co.in",
    "https://www.onet.co.in",
]


class Settings(BaseSettings):
    # --- Required Fields ---
    # Missing any of these aborts startup instead of failing on first use.
    PROJECT_NAME: str = "Storefront_Checkout"
    DATABASE_URL: str
    RAZORPAY_KEY_ID: str
    RAZORPAY_KEY_SECRET: str

    # --- Optional / Default Fields ---
    RAZORPAY_WEBHOOK_SECRET: str | None = None
    RAZORPAY_API_URL: str = "https://api.razorpay.com/v1"

    HOST: str = "0.0.0.0"
    PORT: int = 5000
    ENVIRONMENT: str = "production"  # development | production
    CORS_ORIGINS: list[str] = DEFAULT_CORS_ORIGINS
    LOG_LEVEL: str = "INFO"

    # --- Checkout Rules ---
    MIN_ORDER_AMOUNT: float = 0  # rupees, exclusive
    MAX_ORDER_AMOUNT_PAISE: int = 10_000_000
    DEFAULT_COUNTRY: str = "India"

    # --- Remote Call Limits ---
    GATEWAY_TIMEOUT_SECONDS: float = 5.0
    DB_TIMEOUT_SECONDS: float = 5.0
    READ_RETRIES: int = 2
    DB_CONNECT_RETRIES: int = 10
    DB_CONNECT_WAIT_SECONDS: float = 3.0

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.strip().lower() in ("development", "dev", "local")


@lru_cache
def get_settings() -> Settings:
    return Settings()
