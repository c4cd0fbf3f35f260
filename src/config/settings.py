"""Application settings and runtime config resolution.

This module centralizes environment-backed defaults and resolution rules used by
both the CLI and the API layer.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

# LLM env names and defaults
ENV_MODEL_PROVIDER = "MODEL_PROVIDER"
ENV_MODEL_NAME = "MODEL_NAME"

ALLOWED_PROVIDERS = {"aliyun", "anthropic", "openai", "openrouter"}
DEFAULT_MODEL_PROVIDER = "aliyun"
DEFAULT_MODEL_NAME_BY_PROVIDER = {
    "aliyun": "qwen3.5-plus",
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o",
    "openrouter": "anthropic/claude-sonnet-4.5",
}

# Storage env names and defaults
ENV_STORE_BACKEND = "SCOUT_STORE_BACKEND"
ENV_STORE_PATH = "SCOUT_STORE_PATH"
DEFAULT_STORE_PATH_BY_BACKEND = {
    "file": "data",
    "sqlite": "data/jctc_scout.db",
    "memory": "",
}

# Crawl env names and defaults
ENV_CRAWLER = "SCOUT_CRAWLER"
ENV_FEED_URL = "SCOUT_FEED_URL"
ENV_CRAWL_LIMIT = "SCOUT_CRAWL_LIMIT"
ENV_CRAWL_TIMEOUT_SECONDS = "SCOUT_CRAWL_TIMEOUT_SECONDS"

# ACS "Just Accepted / ASAP" table of contents for J. Chem. Theory Comput.
DEFAULT_FEED_URL = "https://pubs.acs.org/action/showFeed?type=axatoc&feed=rss&jc=jctcce"
DEFAULT_CRAWL_LIMIT = 10
DEFAULT_CRAWL_TIMEOUT_SECONDS = 120

# Enrichment env names and defaults
ENV_ENRICHER = "SCOUT_ENRICHER"
ENV_ENRICH_ENDPOINT = "SCOUT_ENRICH_ENDPOINT"
ENV_ENRICH_API_KEY = "SCOUT_ENRICH_API_KEY"
ENV_ENRICH_TIMEOUT_SECONDS = "SCOUT_ENRICH_TIMEOUT_SECONDS"
ENV_MAX_CONCURRENT_ENRICHMENTS = "SCOUT_MAX_CONCURRENT_ENRICHMENTS"

DEFAULT_ENRICH_TIMEOUT_SECONDS = 90
DEFAULT_MAX_CONCURRENT_ENRICHMENTS = 5

# API env names and defaults
ENV_API_HOST = "API_HOST"
ENV_API_PORT = "API_PORT"
DEFAULT_API_HOST = "0.0.0.0"
DEFAULT_API_PORT = 8111
ENV_CORS_ORIGINS = "API_CORS_ORIGINS"
DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",  # Vite dev server
)

# Logging env names and defaults
ENV_ENVIRONMENT = "ENV"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_LOG_FILE = "LOG_FILE"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = "logs/scout.log"
PRODUCTION_ENVIRONMENTS = {"production", "prod"}

# Refresh endpoint security env names and defaults
ENV_ADMIN_TOKEN = "SCOUT_ADMIN_TOKEN"
ENV_REFRESH_RATE_LIMIT = "SCOUT_REFRESH_RATE_LIMIT"
ENV_REFRESH_WINDOW_SECONDS = "SCOUT_REFRESH_WINDOW_SECONDS"
DEFAULT_REFRESH_RATE_LIMIT = 5
DEFAULT_REFRESH_WINDOW_SECONDS = 60


class StoreBackend(str, Enum):
    """Available key-value backends for the article cache."""

    FILE = "file"
    SQLITE = "sqlite"
    MEMORY = "memory"


class CrawlerType(str, Enum):
    """Available crawl collaborators."""

    FEED = "feed"
    LLM = "llm"


class EnricherType(str, Enum):
    """Available enrichment collaborators."""

    LLM = "llm"
    HTTP = "http"


DEFAULT_STORE_BACKEND: StoreBackend = StoreBackend.FILE
DEFAULT_CRAWLER: CrawlerType = CrawlerType.FEED
DEFAULT_ENRICHER: EnricherType = EnricherType.LLM


def _parse_enum(enum_cls, env_name: str, value: Optional[str], default):
    if not value:
        return default
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        valid = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"Invalid {env_name} '{value}'. Valid options: {valid}")


def _clamp(value: int, minimum: int, maximum: int) -> int:
    return max(minimum, min(maximum, value))


def _int_setting(env: Mapping[str, str], name: str, default: int, minimum: int, maximum: int) -> int:
    try:
        value = int(env.get(name, str(default)))
    except ValueError:
        return default
    return _clamp(value, minimum, maximum)


@dataclass(frozen=True)
class LLMSettings:
    provider: str
    model_name: Optional[str]


@dataclass(frozen=True)
class StoreSettings:
    backend: StoreBackend
    path: str


@dataclass(frozen=True)
class CrawlSettings:
    crawler: CrawlerType
    feed_url: str
    limit: int
    timeout_seconds: int


@dataclass(frozen=True)
class EnrichSettings:
    enricher: EnricherType
    endpoint: Optional[str]
    api_key: Optional[str]
    timeout_seconds: int
    max_concurrent: int


@dataclass(frozen=True)
class APISettings:
    host: str
    port: int
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS


@dataclass(frozen=True)
class LoggingSettings:
    json_format: bool
    level: int
    log_file: str


@dataclass(frozen=True)
class RefreshSecuritySettings:
    admin_token: Optional[str]
    refresh_rate_limit: int
    refresh_window_seconds: int


@dataclass(frozen=True)
class AppSettings:
    llm: LLMSettings
    store: StoreSettings
    crawl: CrawlSettings
    enrich: EnrichSettings
    api: APISettings
    refresh_security: RefreshSecuritySettings


def resolve_llm_settings(
    provider_override: Optional[str] = None,
    model_name_override: Optional[str] = None,
    env: Mapping[str, str] = os.environ,
) -> LLMSettings:
    provider = (provider_override or env.get(ENV_MODEL_PROVIDER) or DEFAULT_MODEL_PROVIDER).lower()
    if provider not in ALLOWED_PROVIDERS:
        valid = ", ".join(sorted(ALLOWED_PROVIDERS))
        raise ValueError(f"Invalid model provider '{provider}'. Valid options: {valid}")

    model_name = model_name_override or env.get(ENV_MODEL_NAME) or None
    return LLMSettings(provider=provider, model_name=model_name)


def resolve_store_settings(env: Mapping[str, str] = os.environ) -> StoreSettings:
    backend = _parse_enum(StoreBackend, ENV_STORE_BACKEND, env.get(ENV_STORE_BACKEND), DEFAULT_STORE_BACKEND)
    path = env.get(ENV_STORE_PATH) or DEFAULT_STORE_PATH_BY_BACKEND[backend.value]
    return StoreSettings(backend=backend, path=path)


def resolve_crawl_settings(env: Mapping[str, str] = os.environ) -> CrawlSettings:
    crawler = _parse_enum(CrawlerType, ENV_CRAWLER, env.get(ENV_CRAWLER), DEFAULT_CRAWLER)
    return CrawlSettings(
        crawler=crawler,
        feed_url=env.get(ENV_FEED_URL) or DEFAULT_FEED_URL,
        limit=_int_setting(env, ENV_CRAWL_LIMIT, DEFAULT_CRAWL_LIMIT, 1, 50),
        timeout_seconds=_int_setting(
            env, ENV_CRAWL_TIMEOUT_SECONDS, DEFAULT_CRAWL_TIMEOUT_SECONDS, 1, 900
        ),
    )


def resolve_enrich_settings(env: Mapping[str, str] = os.environ) -> EnrichSettings:
    enricher = _parse_enum(EnricherType, ENV_ENRICHER, env.get(ENV_ENRICHER), DEFAULT_ENRICHER)

    endpoint = (env.get(ENV_ENRICH_ENDPOINT) or "").strip() or None
    if enricher == EnricherType.HTTP and endpoint is None:
        raise ValueError(f"{ENV_ENRICH_ENDPOINT} must be set when {ENV_ENRICHER}=http")

    api_key = (env.get(ENV_ENRICH_API_KEY) or "").strip() or None

    return EnrichSettings(
        enricher=enricher,
        endpoint=endpoint,
        api_key=api_key,
        timeout_seconds=_int_setting(
            env, ENV_ENRICH_TIMEOUT_SECONDS, DEFAULT_ENRICH_TIMEOUT_SECONDS, 1, 600
        ),
        max_concurrent=_int_setting(
            env, ENV_MAX_CONCURRENT_ENRICHMENTS, DEFAULT_MAX_CONCURRENT_ENRICHMENTS, 1, 20
        ),
    )


def resolve_api_settings(env: Mapping[str, str] = os.environ) -> APISettings:
    host = env.get(ENV_API_HOST, DEFAULT_API_HOST)
    try:
        port = int(env.get(ENV_API_PORT, str(DEFAULT_API_PORT)))
    except ValueError:
        port = DEFAULT_API_PORT

    raw_origins = env.get(ENV_CORS_ORIGINS)
    if raw_origins:
        cors_origins = tuple(o.strip() for o in raw_origins.split(",") if o.strip())
    else:
        cors_origins = DEFAULT_CORS_ORIGINS

    return APISettings(host=host, port=port, cors_origins=cors_origins)


def resolve_logging_settings(env: Mapping[str, str] = os.environ) -> LoggingSettings:
    environment = (env.get(ENV_ENVIRONMENT) or env.get("ENVIRONMENT") or "development").lower()
    level_name = (env.get(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    return LoggingSettings(
        json_format=environment in PRODUCTION_ENVIRONMENTS,
        level=level,
        log_file=env.get(ENV_LOG_FILE) or DEFAULT_LOG_FILE,
    )


def resolve_refresh_security_settings(
    env: Mapping[str, str] = os.environ,
) -> RefreshSecuritySettings:
    admin_token = env.get(ENV_ADMIN_TOKEN)
    if admin_token is not None:
        admin_token = admin_token.strip() or None

    return RefreshSecuritySettings(
        admin_token=admin_token,
        refresh_rate_limit=_int_setting(
            env, ENV_REFRESH_RATE_LIMIT, DEFAULT_REFRESH_RATE_LIMIT, 1, 200
        ),
        refresh_window_seconds=_int_setting(
            env, ENV_REFRESH_WINDOW_SECONDS, DEFAULT_REFRESH_WINDOW_SECONDS, 1, 3600
        ),
    )


def get_app_settings(env: Mapping[str, str] = os.environ) -> AppSettings:
    return AppSettings(
        llm=resolve_llm_settings(env=env),
        store=resolve_store_settings(env=env),
        crawl=resolve_crawl_settings(env=env),
        enrich=resolve_enrich_settings(env=env),
        api=resolve_api_settings(env=env),
        refresh_security=resolve_refresh_security_settings(env=env),
    )


def get_default_model_for_provider(provider: str) -> str:
    return DEFAULT_MODEL_NAME_BY_PROVIDER.get(provider, DEFAULT_MODEL_NAME_BY_PROVIDER[DEFAULT_MODEL_PROVIDER])
