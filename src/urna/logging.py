"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/urna/logging.py`.
Configuración de structlog y utilidades de redacción para no exponer
claves privadas ni direcciones completas en los logs.

Componentes detectados:
  - setup_logging
  - redact_secrets
  - redact_identifier
  - bind_context

======================== ENGLISH ========================
File: `src/urna/logging.py`.
structlog configuration and redaction helpers so private keys and full
addresses do not leak into logs.

Detected components:
  - setup_logging
  - redact_secrets
  - redact_identifier
  - bind_context
"""

from __future__ import annotations

import logging
import os
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, MutableMapping, Optional

import structlog

SENSITIVE_ENV_KEYS = ("URNA_PRIVATE_KEY",)
REDACTED = "[REDACTED]"


def redact_secrets(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Procesador structlog que reemplaza secretos conocidos.

    English: structlog processor that replaces known secret values.
    """
    secrets = [os.getenv(key, "").strip() for key in SENSITIVE_ENV_KEYS]
    secrets = [value for value in secrets if value]
    if not secrets:
        return event_dict
    for key, value in list(event_dict.items()):
        if not isinstance(value, str):
            continue
        for secret in secrets:
            if secret in value:
                # Seguridad: evita exposición de la clave / Security: avoid key exposure.
                value = value.replace(secret, REDACTED)
        event_dict[key] = value
    return event_dict


def redact_identifier(value: str, enabled: bool = True) -> str:
    """Devuelve un identificador acortado para logs.

    English:
        Returns a shortened identifier for logs without exposing the full
        value. Short values pass through unchanged.
    """
    if not enabled or len(value) <= 10:
        return value
    return f"{value[:6]}…{value[-4:]}"


def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None) -> structlog.BoundLogger:
    """Configura structlog y handlers de consola/archivo.

    English: Configure structlog and console/file handlers.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            TimedRotatingFileHandler(
                log_dir / "urna.log",
                when="midnight",
                backupCount=30,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=log_level.upper(),
        handlers=handlers,
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(log_level.upper())),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def bind_context(
    logger: structlog.BoundLogger,
    identity: Optional[str] = None,
    contract_address: Optional[str] = None,
    redact: bool = False,
) -> structlog.BoundLogger:
    """Adjunta contexto estándar al logger.

    English: Bind standard context to the logger.
    """
    context: dict[str, Any] = {}
    if identity:
        context["identity"] = redact_identifier(identity, redact)
    if contract_address:
        context["contract"] = redact_identifier(contract_address, redact)
    return logger.bind(**context)
