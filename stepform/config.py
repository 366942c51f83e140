"""Configuration for the form service and its HTTP client.

Rules:
- Base: `stepform_config.json` at the project root (optional).
- Overrides: text files under `config/`, then environment variables.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("stepform_config.json")
logger = logging.getLogger(__name__)

DEFAULT_DSN = "sqlite:///./forms.db"
DEFAULT_ORIGIN = "http://localhost:5173"


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class DatabaseConfig(BaseModel):
    dsn: str

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=3005, gt=0, lt=65536)


class CorsConfig(BaseModel):
    origins: List[str] = Field(default_factory=lambda: [DEFAULT_ORIGIN])


class ClientConfig(BaseModel):
    base_url: str = "http://localhost:3005"
    timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("base_url")
    @classmethod
    def base_url_must_be_http(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("client.base_url must be an http(s) URL")
        return v.rstrip("/")


class AppConfig(BaseModel):
    database: DatabaseConfig
    server: ServerConfig
    cors: CorsConfig
    client: ClientConfig


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:  # pragma: no cover - defensive
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) stepform_config.json at project root
    4) Development defaults
    """

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        if isinstance(cur, list):
            return ",".join(str(item) for item in cur)
        return str(cur) if cur is not None else default

    dsn = _env("DATABASE_URL") or _read_config_file("database.url") or _base("database.dsn") or DEFAULT_DSN

    host = _env("STEPFORM_HOST") or _read_config_file("server.host") or _base("server.host", "0.0.0.0")
    port_text = _env("STEPFORM_PORT") or _read_config_file("server.port") or _base("server.port", "3005")

    origins_text = _env("CORS_ORIGINS") or _read_config_file("cors.origins") or _base("cors.origins", DEFAULT_ORIGIN)
    origins = [o.strip() for o in str(origins_text).split(",") if o.strip()]

    base_url = _env("STEPFORM_API_URL") or _read_config_file("client.base_url") or _base("client.base_url", "http://localhost:3005")
    timeout_text = _env("STEPFORM_API_TIMEOUT") or _read_config_file("client.timeout_seconds") or _base("client.timeout_seconds", "10")

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn),
            server=ServerConfig(host=str(host).strip(), port=int(str(port_text).strip())),
            cors=CorsConfig(origins=origins),
            client=ClientConfig(base_url=str(base_url).strip(), timeout_seconds=float(str(timeout_text).strip())),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "ServerConfig",
    "CorsConfig",
    "ClientConfig",
    "load_config",
]
