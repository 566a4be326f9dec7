"""Centralized logging configuration with Pydantic Logfire integration."""

import logging
from typing import Any

import logfire
from fastapi import FastAPI

from messengerbot.config import Settings


def setup_logfire(app: FastAPI, settings: Settings) -> None:
    """
    Initialize and configure Pydantic Logfire for observability.

    Sets up:
    - FastAPI instrumentation (request/response tracing)
    - Environment-aware configuration
    - Console logging locally, bare messages elsewhere
    """
    logfire_config: dict[str, Any] = {
        "environment": settings.env,
        # Without a token, keep everything local instead of prompting for auth
        "send_to_logfire": "if-token-present",
    }

    if settings.logfire_token:
        logfire_config["token"] = settings.logfire_token

    logfire.configure(**logfire_config)
    logfire.instrument_fastapi(app)

    if settings.env == "local":
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    else:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",  # Logfire handles structured formatting
        )


def mask_pii(value: str | None, mask_char: str = "*") -> str:
    """
    Mask potentially sensitive data in logs.

    Args:
        value: Value to mask
        mask_char: Character to use for masking

    Returns:
        Masked string
    """
    if not value:
        return ""

    if len(value) <= 4:
        return mask_char * len(value)

    # Show first 2 and last 2 characters, mask the rest
    return f"{value[:2]}{mask_char * (len(value) - 4)}{value[-2:]}"


def redact_tokens(data: dict[str, Any]) -> dict[str, Any]:
    """
    Redact authentication tokens from log data.

    Nested dicts are redacted recursively; only string values under a
    sensitive key are masked.
    """
    redacted = data.copy()
    sensitive_keys = (
        "token",
        "access_token",
        "verify_token",
        "hub.verify_token",
        "secret",
        "authorization",
    )

    for key, value in redacted.items():
        if isinstance(value, dict):
            redacted[key] = redact_tokens(value)
        elif key in sensitive_keys and isinstance(value, str):
            redacted[key] = mask_pii(value)

    return redacted
