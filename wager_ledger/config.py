import logging
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    log_level: str = "INFO"
    seed_demo_data: bool = True
    notification_poll_seconds: int = 10
    currency_symbol: str = "₹"
    default_pin: str = "000000"

    model_config = SettingsConfigDict(env_prefix="LEDGER_", env_file=".env", extra="ignore")


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or Settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
