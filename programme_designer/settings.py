## Application settings configuration

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "dev"
    database_url: str = "sqlite:///./programme_designer.db"
    log_level: str = "INFO"

    # Schedule template provider: "static" (built-in table) or "http"
    template_provider: str = "static"
    template_base_url: str = "http://localhost:5000/api"
    template_timeout_seconds: float = 10.0


settings = Settings()
