from pydantic_settings import BaseSettings

from contact_scanner.services.page_fetcher import BROWSER_HEADERS


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    log_level: str = "INFO"
    fetch_timeout: float = 10.0
    page_delay: float = 0.2
    max_body_bytes: int = 2 * 1024 * 1024
    user_agent: str = BROWSER_HEADERS["User-Agent"]
