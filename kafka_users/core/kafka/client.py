"""Low-level admin client for Kafka SCRAM credential management.

Handles broker connection settings, request timeouts, and resolution of the
per-user futures returned by confluent-kafka's ``AdminClient``.
"""
from __future__ import annotations
import json
import logging
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from confluent_kafka import KafkaError, KafkaException
from confluent_kafka.admin import (
    AdminClient,
    ScramCredentialInfo,
    UserScramCredentialDeletion,
    UserScramCredentialUpsertion,
)

from .exceptions import KafkaAdminError
from .scram import ScramMechanism

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10.0

SASL_MECHANISMS = ("PLAIN", "SCRAM-SHA-256", "SCRAM-SHA-512")

DESCRIBE_OPERATION = "DescribeUserScramCredentials"
ALTER_OPERATION = "AlterUserScramCredentials"

# Per-user error the broker returns for a name with no SCRAM credentials
USER_NOT_FOUND_CODE = "RESOURCE_NOT_FOUND"


@dataclass(frozen=True)
class CredentialInfo:
    """One SCRAM credential stored for a user."""

    mechanism: Optional[ScramMechanism]
    iterations: int


@dataclass(frozen=True)
class DescribedUser:
    """Describe result for a single user name.

    ``error`` is set when the broker reported the user as unknown; transport
    failures are raised instead of being recorded here.
    """

    name: str
    credentials: List[CredentialInfo] = field(default_factory=list)
    error: Optional[KafkaAdminError] = None

    @property
    def exists(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ScramUpsert:
    user: str
    mechanism: ScramMechanism
    iterations: int
    password: str


@dataclass(frozen=True)
class ScramDelete:
    user: str
    mechanism: ScramMechanism


class KafkaAdminClient:
    """Kafka admin client for SCRAM user credentials.

    Features:
    - Every request bounded by ``request_timeout`` (seconds)
    - Centralized error classification ("user unknown" vs transport failure)
    - Idempotent ``close()``

    Usage:
        client = new_admin_client(credentials_json_bytes)
        described = client.describe_user_scrams("alice")
        client.close()
    """

    def __init__(self, admin: Any, request_timeout: float = REQUEST_TIMEOUT):
        """Initialize client.

        Args:
            admin: ``confluent_kafka.admin.AdminClient`` (or compatible)
            request_timeout: Per-request timeout in seconds
        """
        self._admin = admin
        self.request_timeout = request_timeout

    @property
    def closed(self) -> bool:
        return self._admin is None

    def describe_user_scrams(self, *users: str) -> Dict[str, DescribedUser]:
        """Describe SCRAM credentials for exactly the given users.

        Returns:
            Mapping of user name to its describe result

        Raises:
            KafkaAdminError: On transport failure or timeout
        """
        admin = self._require_open(DESCRIBE_OPERATION)
        try:
            futures = admin.describe_user_scram_credentials(list(users), request_timeout=self.request_timeout)
        except (KafkaException, ValueError, TypeError) as exc:
            raise self._translate(exc, DESCRIBE_OPERATION) from exc

        results: Dict[str, DescribedUser] = {}
        for name, future in futures.items():
            try:
                description = future.result(timeout=self.request_timeout)
            except KafkaException as exc:
                error = self._translate(exc, DESCRIBE_OPERATION)
                if error.code != USER_NOT_FOUND_CODE:
                    raise error from exc
                results[name] = DescribedUser(name=name, error=error)
                continue
            except FutureTimeoutError as exc:
                raise KafkaAdminError("_TIMED_OUT", f"no response for '{name}' within {self.request_timeout}s", DESCRIBE_OPERATION) from exc
            results[name] = DescribedUser(
                name=name,
                credentials=[self._credential_info(info) for info in description.scram_credential_infos],
            )
        return results

    def alter_user_scrams(
        self,
        deletions: Sequence[ScramDelete] = (),
        upserts: Sequence[ScramUpsert] = (),
    ) -> Dict[str, Optional[KafkaAdminError]]:
        """Apply credential deletions and upserts in a single request.

        Returns:
            Mapping of user name to ``None`` (success) or the broker's error

        Raises:
            KafkaAdminError: On transport failure or timeout
        """
        admin = self._require_open(ALTER_OPERATION)
        alterations: List[Any] = [
            UserScramCredentialDeletion(d.user, d.mechanism.to_confluent()) for d in deletions
        ]
        alterations.extend(
            UserScramCredentialUpsertion(
                u.user,
                ScramCredentialInfo(u.mechanism.to_confluent(), u.iterations),
                u.password.encode("utf-8"),
            )
            for u in upserts
        )
        try:
            futures = admin.alter_user_scram_credentials(alterations, request_timeout=self.request_timeout)
        except (KafkaException, ValueError, TypeError) as exc:
            raise self._translate(exc, ALTER_OPERATION) from exc

        results: Dict[str, Optional[KafkaAdminError]] = {}
        for name, future in futures.items():
            try:
                future.result(timeout=self.request_timeout)
            except KafkaException as exc:
                results[name] = self._translate(exc, ALTER_OPERATION)
                continue
            except FutureTimeoutError as exc:
                raise KafkaAdminError("_TIMED_OUT", f"no response for '{name}' within {self.request_timeout}s", ALTER_OPERATION) from exc
            results[name] = None
        return results

    def close(self) -> None:
        """Release the underlying admin client. Safe to call repeatedly."""
        if self._admin is None:
            return
        admin, self._admin = self._admin, None
        # AdminClient has no explicit close; flush outstanding callbacks
        poll = getattr(admin, "poll", None)
        if callable(poll):
            poll(0)

    def _require_open(self, operation: str) -> Any:
        if self._admin is None:
            raise KafkaAdminError("_DESTROY", "client is closed", operation)
        return self._admin

    @staticmethod
    def _credential_info(info: Any) -> CredentialInfo:
        try:
            mechanism: Optional[ScramMechanism] = ScramMechanism.from_confluent(info.mechanism)
        except ValueError:
            mechanism = None
        return CredentialInfo(mechanism=mechanism, iterations=int(info.iterations))

    @staticmethod
    def _translate(exc: BaseException, operation: str) -> KafkaAdminError:
        """Normalize a confluent-kafka failure into ``KafkaAdminError``."""
        if isinstance(exc, KafkaException) and exc.args and isinstance(exc.args[0], KafkaError):
            err = exc.args[0]
            return KafkaAdminError(err.name(), err.str(), operation)
        return KafkaAdminError(type(exc).__name__, str(exc), operation)


# ─────────────────────────────────────────────────────────────────────────────
# Client construction from provider credentials
# ─────────────────────────────────────────────────────────────────────────────

def parse_credentials(credentials: bytes) -> Dict[str, Any]:
    """Parse and validate the provider credentials document.

    Expected shape::

        {"brokers": ["kafka-0:9092"],
         "sasl": {"mechanism": "SCRAM-SHA-512", "username": "admin", "password": "..."},
         "tls": {"enabled": true, "ca_location": "/etc/ca.pem"}}

    Raises:
        ValueError: If the document is not valid JSON or misses required fields
    """
    try:
        data = json.loads(credentials)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Credentials are not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Credentials must be a JSON object")

    brokers = data.get("brokers")
    if not brokers or not isinstance(brokers, list) or not all(isinstance(b, str) and b for b in brokers):
        raise ValueError("Credentials must list at least one broker in 'brokers'")

    sasl = data.get("sasl")
    if sasl is not None:
        if not isinstance(sasl, dict):
            raise ValueError("'sasl' must be an object")
        mechanism = str(sasl.get("mechanism", "")).upper()
        if mechanism not in SASL_MECHANISMS:
            raise ValueError(f"Unsupported SASL mechanism '{sasl.get('mechanism')}'")
        if not sasl.get("username") or not sasl.get("password"):
            raise ValueError("SASL credentials require 'username' and 'password'")

    tls = data.get("tls")
    if tls is not None and not isinstance(tls, dict):
        raise ValueError("'tls' must be an object")
    return data


def build_client_config(creds: Dict[str, Any]) -> Dict[str, Any]:
    """Translate parsed credentials into librdkafka configuration."""
    sasl = creds.get("sasl")
    tls = creds.get("tls") or {}
    tls_enabled = bool(tls.get("enabled", bool(tls)))

    conf: Dict[str, Any] = {"bootstrap.servers": ",".join(creds["brokers"])}
    if sasl and tls_enabled:
        conf["security.protocol"] = "SASL_SSL"
    elif sasl:
        conf["security.protocol"] = "SASL_PLAINTEXT"
    elif tls_enabled:
        conf["security.protocol"] = "SSL"
    else:
        conf["security.protocol"] = "PLAINTEXT"

    if sasl:
        conf["sasl.mechanism"] = str(sasl["mechanism"]).upper()
        conf["sasl.username"] = sasl["username"]
        conf["sasl.password"] = sasl["password"]
    if tls_enabled:
        if tls.get("ca_location"):
            conf["ssl.ca.location"] = tls["ca_location"]
        if tls.get("insecure_skip_verify"):
            conf["enable.ssl.certificate.verification"] = False
    return conf


def new_admin_client(
    credentials: bytes,
    *,
    request_timeout: float = REQUEST_TIMEOUT,
    admin_factory: Callable[[Dict[str, Any]], Any] = AdminClient,
) -> KafkaAdminClient:
    """Create an admin client from raw provider credentials.

    Args:
        credentials: JSON credentials document (see ``parse_credentials``)
        request_timeout: Per-request timeout in seconds
        admin_factory: Builds the underlying admin client from a config dict

    Returns:
        Ready-to-use ``KafkaAdminClient``
    """
    conf = build_client_config(parse_credentials(credentials))
    logger.debug("Creating Kafka admin client for %s (%s)", conf["bootstrap.servers"], conf["security.protocol"])
    return KafkaAdminClient(admin_factory(conf), request_timeout=request_timeout)
