from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "PrintDesk"
    LOG_LEVEL: str = "INFO"

    # Gemini project analysis. An empty key means every request uses the keyword fallback
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    ANALYZER_TIMEOUT_SECONDS: float = 30.0

    # Directory holding materials.json / printers.json. Empty → bundled printdesk/data
    CATALOG_DIR: str = ""

    class Config:
        env_file = ".env"


settings = Settings()
