"""
Configuration
=============

Configuração do terminal via variáveis de ambiente (ou .env).

Exemplo de .env:
    OPENROUTER_API_KEY=sk-or-...
    MIN_PROFIT_PERCENT=3.0
    LOG_LEVEL=DEBUG

O engine não lê configuração: main.py e api.py traduzem estes valores
em argumentos de construtor.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    openrouter_api_key: Optional[str] = Field(
        default=None,
        description="OpenRouter API key; semantic verification is enabled only when set",
    )
    openrouter_model: str = Field(
        default="openai/gpt-4o-mini",
        description="Model used for semantic verification",
    )
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions",
        description="OpenRouter chat completions endpoint",
    )
    app_url: str = Field(
        default="http://localhost:3000",
        description="Sent as HTTP-Referer to OpenRouter",
    )
    min_profit_percent: float = Field(
        default=5.0, description="Minimum spread, in percentage points", ge=0
    )
    min_true_arbitrage_profit: float = Field(
        default=0.01, description="Minimum guaranteed profit (fraction) for true arbitrage", ge=0
    )
    transaction_fee: float = Field(
        default=0.01, description="Fee applied multiplicatively to total cost", ge=0
    )
    cache_ttl_seconds: float = Field(
        default=600, description="TTL for cached markets and arbitrage results", ge=0
    )
    http_timeout_seconds: float = Field(
        default=30, description="Timeout for outbound HTTP requests", gt=0
    )
    polymarket_page_size: int = Field(
        default=200, description="Markets per Gamma API page", ge=1
    )
    polymarket_max_pages: int = Field(
        default=10, description="Maximum Gamma API pages per collection", ge=1
    )
    log_level: str = Field(default="INFO", description="Root logging level")

    @field_validator("openrouter_api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return level

    @property
    def verification_enabled(self) -> bool:
        return self.openrouter_api_key is not None


@lru_cache
def get_settings() -> Settings:
    return Settings()
