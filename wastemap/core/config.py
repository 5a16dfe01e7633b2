from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    jwt_secret: str = "dev"
    jwt_alg: str = "HS256"
    access_ttl_min: int = 60 * 24

    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "wastemap"
    use_mongo: bool = False

    cors_origins: List[str] = ["http://localhost:3000"]
    log_level: str = "INFO"

    default_page_limit: int = 50
    max_page_limit: int = 200

    # geocoding of pickup addresses without coordinates
    geocode_on_create: bool = False
    geocoder: str = "nominatim"
    opencage_key: str | None = None
    admin_contact: str = "mailto:admin@example.com"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
