from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./pricing.db"
    APP_NAME: str = "Product Pricing Calculator"

    # Pricing defaults for newly created products
    LABOR_RATE_DEFAULT: float = 40.00
    TARGET_MARGIN_DEFAULT: float = 60.0
    CURRENCY_SYMBOL: str = "₱"

    # Seed the default catalog + sample product on an empty database
    SEED_DEFAULTS: bool = True

    # Gemini pricing advice
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_TIMEOUT_SECONDS: int = 30
    ADVICE_COOLDOWN_SECONDS: float = 10.0

    model_config = SettingsConfigDict(env_file=".env")


settings = Settings()
