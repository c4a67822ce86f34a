from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Mongo
    MONGODB_URI: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "agrisense"

    # JWT / Auth
    JWT_SECRET: str = "fallback_secret"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_MINUTES: int = 60 * 24 * 30
    BCRYPT_ROUNDS: int = 12
    ALLOW_ADMIN_SIGNUP: bool = False

    # Server
    ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 5001
    CORS_ORIGINS: str = "*"
    APP_VERSION: str = "1.0.0"

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

    @property
    def cors_origins(self) -> list:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache()
def get_settings():
    return Settings()
