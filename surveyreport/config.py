from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    app_name: str = 'Property Condition Survey Backend'

    data_dir: Path = Field(default=Path('./data'))

    # Photo fetch for report rendering
    image_fetch_timeout_seconds: float = 15.0
    image_fetch_concurrency: int = 6
    image_max_bytes: int = 15 * 1024 * 1024
    image_user_agent: str = 'surveyreport/1.0'

    # HTTP server
    server_host: str = Field(
        default='0.0.0.0',
        validation_alias=AliasChoices('SERVER_HOST', 'HOST'),
    )
    server_port: int = Field(
        default=5000,
        validation_alias=AliasChoices('SERVER_PORT', 'PORT'),
    )

    # PDF export
    report_producer: str = 'Property Condition Survey'
    log_level: str = 'INFO'


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    (settings.data_dir / 'surveys').mkdir(parents=True, exist_ok=True)
    return settings
