"""Configuración segura y validada del cliente Urna.

Secure and validated Urna client configuration.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import AnyUrl, Field, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from urna.models import DEFAULT_GAS_LIMIT

logger = structlog.get_logger(__name__)

_ENV_PATH = Path(".env")
_ENV_LOCAL_PATH = Path(".env.local")
# Seguridad: Cargar variables sensibles desde .env y .env.local. / Security: Load sensitive vars from .env/.env.local.
load_dotenv(_ENV_PATH, override=False)
load_dotenv(_ENV_LOCAL_PATH, override=False)

BUNDLED_ABI_PATH = Path(__file__).resolve().parent / "abi" / "election.json"
PRIVATE_KEY_ENV = "URNA_PRIVATE_KEY"
_PLACEHOLDER_KEYS = {"", "0x...", "REPLACE_ME"}


class WalletMode(str, Enum):
    """Modos de firma soportados / Supported signing modes."""

    NODE = "node"
    LOCAL_KEY = "local_key"


class UrnaSettings(BaseSettings):
    """Variables de entorno y archivo .env para Urna.

    English: Environment variables and .env file for Urna.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    RPC_URL: str = "http://127.0.0.1:7545"
    CONTRACT_ADDRESS: str
    CHAIN_ID: int = 1337
    ABI_PATH: Path = BUNDLED_ABI_PATH
    POLL_INTERVAL_SECONDS: float = Field(default=5.0, gt=0)
    GAS_LIMIT: int = Field(default=DEFAULT_GAS_LIMIT, gt=0)
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[Path] = None
    LOG_REDACT_IDENTIFIERS: bool = False
    WALLET_MODE: WalletMode = WalletMode.NODE

    @field_validator("RPC_URL")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        """Validate URLs without changing the stored type."""
        TypeAdapter(AnyUrl).validate_python(value)
        return value

    @field_validator("CONTRACT_ADDRESS")
    @classmethod
    def _validate_address(cls, value: str) -> str:
        cleaned = value.strip()
        body = cleaned[2:] if cleaned.lower().startswith("0x") else ""
        if len(body) != 40:
            raise ValueError("CONTRACT_ADDRESS must be a 0x-prefixed 20-byte hex address")
        try:
            int(body, 16)
        except ValueError as exc:
            raise ValueError("CONTRACT_ADDRESS is not valid hex") from exc
        return cleaned

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    def validate_paths(self) -> None:
        """Valida que el ABI exista. / Validate that the ABI file exists."""
        if not self.ABI_PATH.is_file():
            raise ValueError(f"ABI_PATH does not exist: {self.ABI_PATH}")


def resolve_private_key(raw_value: Any = None) -> Optional[str]:
    """Resuelve la clave privada desde ``URNA_PRIVATE_KEY``.

    El valor en YAML se ignora intencionalmente para evitar fugas de
    secretos; si se encuentra uno real se registra una advertencia.

    English:
        Resolves the wallet private key from the ``URNA_PRIVATE_KEY`` env var.
        A YAML value is ignored and only logged when it is not a placeholder.
    """
    env_key = os.getenv(PRIVATE_KEY_ENV, "").strip()
    if env_key:
        return env_key
    if raw_value and str(raw_value).strip() not in _PLACEHOLDER_KEYS:
        logger.warning("private_key_in_config_ignored", env_var=PRIVATE_KEY_ENV)
    return None


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    """Carga un mapa YAML o lanza un error orientado al usuario.

    English: Load a YAML mapping or raise a user-facing error.
    """
    if not path.exists():
        raise ValueError(f"Missing config file {path.as_posix()}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"{path.name} has YAML syntax errors") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"{path.name} must be a YAML mapping")
    return raw


def load_settings(config_path: Optional[Path] = None) -> UrnaSettings:
    """Carga y valida configuración desde YAML o .env, fallando con detalle.

    English:
        Load and validate configuration from YAML or .env, failing with
        details. YAML keys are case-insensitive; ``private_key`` is never read
        from the file.
    """
    try:
        if config_path:
            raw = _load_yaml_mapping(config_path)
            resolve_private_key(raw.pop("private_key", None))
            payload = {str(key).upper(): value for key, value in raw.items()}
            settings = UrnaSettings.model_validate(payload)
        else:
            settings = UrnaSettings()
        settings.validate_paths()
        return settings
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
