"""Desired-state manifests: YAML documents describing provider configs and users.

Example::

    kind: ProviderConfig
    metadata: {name: default}
    spec:
      credentials:
        source: Secret
        secretRef: {name: kafka-admin-credentials}
    ---
    kind: User
    metadata:
      name: alice
    spec:
      forProvider: {mechanism: SCRAM-SHA-512, iterations: 4096}
      providerConfigRef: {name: default}
      writeConnectionSecretToRef: {name: alice-kafka}
"""
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .kafka.scram import ScramMechanism
from .providers import CredentialsSource, ProviderConfig, ProviderConfigStore, ProviderCredentials
from .resources import User, UserParameters

EXTERNAL_NAME_ANNOTATION = "crossplane.io/external-name"

# Kafka rejects SCRAM iteration counts outside this range
MIN_ITERATIONS = 4096
MAX_ITERATIONS = 16384


class ManifestError(ValueError):
    """Manifest is malformed or fails validation."""


@dataclass
class Manifest:
    provider_configs: ProviderConfigStore = field(default_factory=ProviderConfigStore)
    users: list[User] = field(default_factory=list)

    def get_user(self, name: str) -> User:
        for user in self.users:
            if user.name == name:
                return user
        raise ManifestError(f"User '{name}' not found in manifest")


def validate_user_parameters(raw: Any, resource: str) -> UserParameters:
    """Validate ``spec.forProvider`` of a User document.

    Raises:
        ManifestError: Unsupported mechanism or iterations out of range
    """
    if not isinstance(raw, dict):
        raise ManifestError(f"User '{resource}': spec.forProvider is required")

    try:
        mechanism = ScramMechanism.from_string(str(raw.get("mechanism", "")))
    except ValueError as exc:
        raise ManifestError(f"User '{resource}': {exc}") from exc

    iterations = raw.get("iterations")
    if isinstance(iterations, bool) or not isinstance(iterations, int):
        raise ManifestError(f"User '{resource}': iterations must be an integer")
    if not MIN_ITERATIONS <= iterations <= MAX_ITERATIONS:
        raise ManifestError(
            f"User '{resource}': iterations must be between {MIN_ITERATIONS} and {MAX_ITERATIONS}"
        )

    return UserParameters(mechanism=mechanism.value, iterations=iterations)


def _ref_name(spec: dict, key: str) -> Optional[str]:
    ref = spec.get(key)
    if isinstance(ref, dict):
        return ref.get("name")
    return None


def _metadata_name(doc: dict) -> str:
    name = (doc.get("metadata") or {}).get("name")
    if not name or not isinstance(name, str):
        raise ManifestError(f"{doc.get('kind')} document is missing metadata.name")
    return name


def _parse_provider_config(doc: dict) -> ProviderConfig:
    name = _metadata_name(doc)
    creds = ((doc.get("spec") or {}).get("credentials")) or {}
    try:
        source = CredentialsSource(creds.get("source", CredentialsSource.NONE.value))
    except ValueError as exc:
        raise ManifestError(f"ProviderConfig '{name}': unknown credentials source '{creds.get('source')}'") from exc

    return ProviderConfig(
        name=name,
        credentials=ProviderCredentials(
            source=source,
            secret_name=_ref_name(creds, "secretRef"),
            env=_ref_name(creds, "env"),
            path=(creds.get("fs") or {}).get("path"),
        ),
    )


def _connection_secret_name(spec: dict, resource: str) -> Optional[str]:
    if spec.get("writeConnectionSecretToRef") is None:
        return None
    name = _ref_name(spec, "writeConnectionSecretToRef")
    if not isinstance(name, str) or not name or name in (".", "..") or "/" in name or "\\" in name:
        raise ManifestError(
            f"User '{resource}': writeConnectionSecretToRef.name must be a single path segment"
        )
    return name


def _parse_user(doc: dict) -> User:
    name = _metadata_name(doc)
    metadata = doc.get("metadata") or {}
    spec = doc.get("spec") or {}
    annotations = metadata.get("annotations") or {}

    return User(
        name=name,
        for_provider=validate_user_parameters(spec.get("forProvider"), name),
        provider_config_ref=_ref_name(spec, "providerConfigRef") or "default",
        external_name=annotations.get(EXTERNAL_NAME_ANNOTATION),
        write_connection_secret_to=_connection_secret_name(spec, name),
        deleting=bool(metadata.get("deletionTimestamp")),
    )


def parse_manifest(text: str) -> Manifest:
    """Parse a multi-document YAML manifest.

    Raises:
        ManifestError: Invalid YAML, unknown kinds, or duplicate names
    """
    try:
        documents = [doc for doc in yaml.safe_load_all(text) if doc]
    except yaml.YAMLError as exc:
        raise ManifestError(f"Invalid YAML: {exc}") from exc

    manifest = Manifest()
    for doc in documents:
        if not isinstance(doc, dict):
            raise ManifestError("Every manifest document must be a mapping")
        kind = doc.get("kind")
        if kind == "ProviderConfig":
            config = _parse_provider_config(doc)
            if config.name in manifest.provider_configs:
                raise ManifestError(f"Duplicate ProviderConfig '{config.name}'")
            manifest.provider_configs.add(config)
        elif kind == "User":
            user = _parse_user(doc)
            if any(u.name == user.name for u in manifest.users):
                raise ManifestError(f"Duplicate User '{user.name}'")
            manifest.users.append(user)
        else:
            raise ManifestError(f"Unsupported kind '{kind}'")
    return manifest


def load_manifest(path: Path | str) -> Manifest:
    """Read and parse a manifest file."""
    return parse_manifest(Path(path).read_text(encoding="utf-8"))
