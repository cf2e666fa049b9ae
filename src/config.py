from __future__ import annotations
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "config.yaml"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    telegram_apikey: str = ""

    mariadb_host: str = "localhost"
    mariadb_port: int = 3306
    mariadb_database: str = "checkup"
    mariadb_user: str = "checkup"
    mariadb_password: str = ""

    default_base_currency: str = "USD"
    metrics_port: int = 9090
    # Outside a source checkout, point this at a copy of config/config.yaml
    config_path: Path = CONFIG_PATH

    @property
    def database_url(self) -> str:
        return (
            f"mysql+aiomysql://{self.mariadb_user}:{self.mariadb_password}"
            f"@{self.mariadb_host}:{self.mariadb_port}/{self.mariadb_database}"
        )


def load_app_config(path: str | Path = CONFIG_PATH) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f)


settings = Settings()
app_config = load_app_config(settings.config_path)
