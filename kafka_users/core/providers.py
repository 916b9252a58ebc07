"""Provider configuration: where a user's admin credentials come from.

A ``ProviderConfig`` names a credentials source; ``extract_credentials``
turns that source into the raw bytes the admin client is built from.
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Optional

from .resources import User

logger = logging.getLogger(__name__)

DEFAULT_SECRETS_DIR = Path("/run/secrets")


class CredentialsSource(str, Enum):
    NONE = "None"
    SECRET = "Secret"
    ENVIRONMENT = "Environment"
    FILESYSTEM = "Filesystem"


@dataclass(frozen=True)
class ProviderCredentials:
    """Credentials selector of a provider config.

    Attributes:
        source: Where to read from
        secret_name: File name under the secrets directory (``Secret``)
        env: Environment variable name (``Environment``)
        path: File path (``Filesystem``)
    """

    source: CredentialsSource
    secret_name: Optional[str] = None
    env: Optional[str] = None
    path: Optional[str] = None


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    credentials: ProviderCredentials


class ProviderConfigNotFoundError(LookupError):
    """No provider config registered under the requested name."""


class ProviderConfigStore:
    """In-memory registry of provider configs keyed by name."""

    def __init__(self, configs: Iterable[ProviderConfig] = ()):
        self._configs: Dict[str, ProviderConfig] = {}
        for config in configs:
            self.add(config)

    def add(self, config: ProviderConfig) -> None:
        self._configs[config.name] = config

    def get(self, name: str) -> ProviderConfig:
        """Return the named provider config.

        Raises:
            ProviderConfigNotFoundError: If no config has that name
        """
        try:
            return self._configs[name]
        except KeyError:
            raise ProviderConfigNotFoundError(f"ProviderConfig '{name}' not found") from None

    def __contains__(self, name: object) -> bool:
        return name in self._configs

    def __len__(self) -> int:
        return len(self._configs)


@dataclass
class UsageTracker:
    """Records which provider config each user resource depends on."""

    usages: Dict[str, str] = field(default_factory=dict)

    def track(self, resource: User) -> None:
        """Record the resource's provider config usage.

        Raises:
            ValueError: If the resource references no provider config
        """
        if not resource.provider_config_ref:
            raise ValueError(f"User '{resource.name}' does not reference a ProviderConfig")
        self.usages[resource.name] = resource.provider_config_ref

    def users_of(self, provider_config: str) -> list[str]:
        return sorted(name for name, ref in self.usages.items() if ref == provider_config)


def extract_credentials(
    credentials: ProviderCredentials,
    secrets_dir: Path = DEFAULT_SECRETS_DIR,
) -> bytes:
    """Read raw credential bytes from the configured source.

    Raises:
        ValueError: Missing selector, missing or empty source, or ``None`` source
    """
    source = credentials.source
    if source == CredentialsSource.SECRET:
        if not credentials.secret_name:
            raise ValueError("Secret credentials source requires a secret name")
        return _read_file(Path(secrets_dir) / credentials.secret_name)

    if source == CredentialsSource.ENVIRONMENT:
        if not credentials.env:
            raise ValueError("Environment credentials source requires an environment variable name")
        value = os.environ.get(credentials.env)
        if not value:
            raise ValueError(f"Environment variable {credentials.env} is not set")
        return value.encode("utf-8")

    if source == CredentialsSource.FILESYSTEM:
        if not credentials.path:
            raise ValueError("Filesystem credentials source requires a path")
        return _read_file(Path(credentials.path))

    raise ValueError(f"Credentials source '{source.value}' provides no credentials")


def _read_file(path: Path) -> bytes:
    if not path.is_file():
        raise ValueError(f"Credentials file {path} does not exist")
    data = path.read_bytes().strip()
    if not data:
        raise ValueError(f"Credentials file {path} is empty")
    logger.debug("Loaded provider credentials from %s", path)
    return data
