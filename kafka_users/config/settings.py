"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path

from kafka_users.core.credentials import MIN_PASSWORD_LENGTH, PASSWORD_LENGTH
from kafka_users.core.kafka.client import REQUEST_TIMEOUT

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _load_secret_from_file(secret_name: str, env_var: str | None = None, secrets_dir: Path | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. {secrets_dir}/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Returns:
        Secret value or None if not found
    """
    secret_file = (secrets_dir or Path("/run/secrets")) / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] Loaded {secret_name} from {secret_file.parent}")
                return secret_value
        except OSError as e:
            print(f"[settings] Failed to read {secret_file}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _get_float(var_name: str, default: float) -> float:
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be a number, got '{raw}'.") from None
    if value <= 0:
        raise RuntimeError(f"Environment variable {var_name} must be positive.")
    return value


def _get_int(var_name: str, default: int, minimum: int) -> int:
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer, got '{raw}'.") from None
    if value < minimum:
        raise RuntimeError(f"Environment variable {var_name} must be at least {minimum}.")
    return value


@dataclass
class AppConfig:
    """Application configuration container."""
    # Kafka
    request_timeout: float = REQUEST_TIMEOUT
    secrets_dir: Path = Path("/run/secrets")

    # Generated credentials
    connection_secret_dir: Path = Path(".runtime/connection-secrets")
    password_length: int = PASSWORD_LENGTH

    # Audit
    audit_log_signing_key: str = ""

    # Logging
    log_level: str = "INFO"


def load_settings() -> AppConfig:
    """Load provider settings from environment and /run/secrets."""
    secrets_dir = Path(os.environ.get("KAFKA_SECRETS_DIR", "/run/secrets"))

    request_timeout = _get_float("KAFKA_REQUEST_TIMEOUT", REQUEST_TIMEOUT)
    password_length = _get_int("PASSWORD_LENGTH", PASSWORD_LENGTH, MIN_PASSWORD_LENGTH)
    connection_secret_dir = Path(os.environ.get("CONNECTION_SECRET_DIR", ".runtime/connection-secrets"))

    audit_log_signing_key = _load_secret_from_file(
        "audit_log_signing_key",
        "AUDIT_LOG_SIGNING_KEY",
        secrets_dir=secrets_dir,
    ) or ""
    if audit_log_signing_key:
        os.environ["AUDIT_LOG_SIGNING_KEY"] = audit_log_signing_key

    log_level = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in LOG_LEVELS:
        raise RuntimeError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}.")

    return AppConfig(
        request_timeout=request_timeout,
        secrets_dir=secrets_dir,
        connection_secret_dir=connection_secret_dir,
        password_length=password_length,
        audit_log_signing_key=audit_log_signing_key,
        log_level=log_level,
    )
