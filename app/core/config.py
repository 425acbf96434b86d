from pathlib import Path

from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parents[2]

class Settings(BaseSettings):
    PROJECT_NAME: str = "Barbershop Booking API"

    # Server
    PORT: int = 8000
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    # Security
    SECRET_KEY: str = "dev_secret_key"
    ADMIN_PASSWORD: str = ""  # admin login is refused until this is set
    ADMIN_TOKEN_EXPIRE_MINUTES: int = 120

    # Shop
    TIMEZONE: str = "Africa/Tunis"
    SHOP_CONFIG_PATH: str = str(BASE_DIR / "data" / "shop_config.json")

    # Admin panel
    API_BASE_URL: str = "http://localhost:8000"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
