"""
Reconciliation of Kafka users against their desired state.

Flow of one pass for one resource:

    Connector.connect ──> Session.observe ──┬──> Session.create   (user missing)
                                            ├──> Session.delete   (deletion requested)
                                            ├──> Session.update   (drift, always rejected)
                                            └──> nothing          (up to date)
    Connector.disconnect (always)

The core never loops or retries; a caller-owned driver (``reconcile_once``
or an external scheduler) decides when to run the next pass.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, NoReturn, Optional

from confluent_kafka import KafkaException

from .credentials import PASSWORD_KEY, generate_password
from .kafka import (
    REQUEST_TIMEOUT,
    ConnectError,
    ErrorKind,
    KafkaAdminClient,
    KafkaUserError,
    NotAUserError,
    PasswordGenerationError,
    SessionClosedError,
    UpdateNotSupportedError,
    UserNotFoundError,
    create_user,
    delete_user,
    generate_user,
    get_user,
    is_up_to_date,
    new_admin_client,
)
from .providers import (
    DEFAULT_SECRETS_DIR,
    ProviderConfigNotFoundError,
    ProviderConfigStore,
    UsageTracker,
    extract_credentials,
)
from .resources import (
    User,
    available,
    creating,
    deleting,
    reconcile_error,
    reconcile_success,
)

logger = logging.getLogger(__name__)

NewClientFn = Callable[..., KafkaAdminClient]
PasswordFn = Callable[[], str]


# ─────────────────────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ExternalObservation:
    resource_exists: bool
    resource_up_to_date: bool = False


@dataclass(frozen=True)
class ExternalCreation:
    """Outcome of a create; the only place the generated password lives."""

    connection_details: Dict[str, bytes] = field(default_factory=dict, repr=False)


class PassState(str, Enum):
    UNCONNECTED = "Unconnected"
    CONNECTED = "Connected"
    OBSERVED = "Observed"
    CREATED = "Created"
    DELETED = "Deleted"
    NOOP = "NoOp"
    REJECTED = "Rejected"
    FAILED = "Failed"


@dataclass(frozen=True)
class PassResult:
    """Outcome of one reconciliation pass."""

    name: str
    state: PassState
    observation: Optional[ExternalObservation] = None
    connection_details: Optional[Dict[str, bytes]] = field(default=None, repr=False)
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def as_user(mg: Any) -> User:
    """Narrow a managed resource to a ``User``.

    Raises:
        NotAUserError: If ``mg`` is any other kind of resource
    """
    if not isinstance(mg, User):
        raise NotAUserError()
    return mg


# ─────────────────────────────────────────────────────────────────────────────
# Session: one admin handle, one resource, one pass
# ─────────────────────────────────────────────────────────────────────────────

class Session:
    """Open admin handle plus the operations that run over it.

    Produced by ``Connector.connect`` and released by
    ``Connector.disconnect`` (or ``close``).
    """

    def __init__(self, client: KafkaAdminClient, password_fn: PasswordFn = generate_password):
        self._client: Optional[KafkaAdminClient] = client
        self._password_fn = password_fn

    @property
    def closed(self) -> bool:
        return self._client is None

    @property
    def client(self) -> KafkaAdminClient:
        if self._client is None:
            raise SessionClosedError()
        return self._client

    def observe(self, mg: Any) -> ExternalObservation:
        """Report whether the user exists and matches its desired parameters.

        A missing user is not an error; every other failure propagates.
        """
        cr = as_user(mg)
        name = cr.get_external_name()
        try:
            observed = get_user(self.client, name)
        except UserNotFoundError:
            logger.debug("[observe] User '%s' does not exist", name)
            return ExternalObservation(resource_exists=False)

        cr.set_conditions(available())
        up_to_date = is_up_to_date(cr.for_provider, observed)
        if not up_to_date:
            logger.info(
                "[observe] User '%s' drifted: desired %s/%d, observed %s/%d",
                name,
                cr.for_provider.mechanism,
                cr.for_provider.iterations,
                observed.mechanism,
                observed.iterations,
            )
        return ExternalObservation(resource_exists=True, resource_up_to_date=up_to_date)

    def create(self, mg: Any) -> ExternalCreation:
        """Create the user with a freshly generated password.

        Raises:
            PasswordGenerationError: Before any remote call is made
        """
        cr = as_user(mg)
        try:
            password = self._password_fn()
        except Exception as exc:
            raise PasswordGenerationError(cause=exc) from exc

        create_user(self.client, generate_user(cr.get_external_name(), cr.for_provider), password)
        return ExternalCreation(connection_details={PASSWORD_KEY: password.encode("utf-8")})

    def update(self, mg: Any) -> NoReturn:
        raise UpdateNotSupportedError()

    def delete(self, mg: Any) -> None:
        cr = as_user(mg)
        delete_user(self.client, generate_user(cr.get_external_name(), cr.for_provider))

    def close(self) -> None:
        """Release the admin handle. Idempotent and never raises."""
        if self._client is None:
            return
        client, self._client = self._client, None
        try:
            client.close()
        except Exception as exc:
            logger.warning("Failed to close Kafka admin client: %s", exc)


# ─────────────────────────────────────────────────────────────────────────────
# Connector
# ─────────────────────────────────────────────────────────────────────────────

class Connector:
    """Produces a ``Session`` per resource by:

    1. Tracking that the resource uses a provider config.
    2. Looking up that provider config.
    3. Extracting the credentials it points to.
    4. Building an admin client from the credentials.
    """

    def __init__(
        self,
        provider_configs: ProviderConfigStore,
        usage: Optional[UsageTracker] = None,
        *,
        new_client_fn: NewClientFn = new_admin_client,
        password_fn: PasswordFn = generate_password,
        secrets_dir: Path = DEFAULT_SECRETS_DIR,
        request_timeout: float = REQUEST_TIMEOUT,
    ):
        self.provider_configs = provider_configs
        self.usage = usage or UsageTracker()
        self._new_client_fn = new_client_fn
        self._password_fn = password_fn
        self.secrets_dir = Path(secrets_dir)
        self.request_timeout = request_timeout

    def connect(self, mg: Any) -> Session:
        """Open a session for the resource.

        Raises:
            NotAUserError: Resource is not a User
            ConnectError: Any setup step failed; ``kind`` names the step
        """
        cr = as_user(mg)

        try:
            self.usage.track(cr)
        except ValueError as exc:
            raise ConnectError("cannot track ProviderConfig usage", cause=exc, kind=ErrorKind.TRACK_USAGE_FAILED) from exc

        try:
            pc = self.provider_configs.get(cr.provider_config_ref)
        except ProviderConfigNotFoundError as exc:
            raise ConnectError("cannot get ProviderConfig", cause=exc, kind=ErrorKind.GET_PROVIDER_CONFIG_FAILED) from exc

        try:
            data = extract_credentials(pc.credentials, self.secrets_dir)
        except (ValueError, OSError) as exc:
            raise ConnectError("cannot get credentials", cause=exc, kind=ErrorKind.GET_CREDENTIALS_FAILED) from exc

        try:
            client = self._new_client_fn(data, request_timeout=self.request_timeout)
        except (ValueError, KafkaException, KafkaUserError) as exc:
            raise ConnectError("cannot create new Kafka client", cause=exc, kind=ErrorKind.NEW_CLIENT_FAILED) from exc

        logger.debug("[connect] Session opened for '%s' via ProviderConfig '%s'", cr.name, pc.name)
        return Session(client, password_fn=self._password_fn)

    def disconnect(self, session: Optional[Session]) -> None:
        """Close the session if one is held. Idempotent."""
        if session is None:
            return
        session.close()


# ─────────────────────────────────────────────────────────────────────────────
# Single-pass driver
# ─────────────────────────────────────────────────────────────────────────────

def reconcile_once(connector: Connector, mg: Any) -> PassResult:
    """Run one Connect → Observe → (Create | Delete | Update) → Disconnect pass.

    Errors are captured in the result rather than raised so the caller can
    decide when to retry. At most one mutating call is issued.
    """
    try:
        cr = as_user(mg)
    except NotAUserError as exc:
        return PassResult(name=getattr(mg, "name", "?"), state=PassState.FAILED, error=exc)

    name = cr.get_external_name()
    try:
        session = connector.connect(cr)
    except KafkaUserError as exc:
        logger.error("[reconcile] Cannot connect for '%s': %s", name, exc)
        cr.set_conditions(reconcile_error(exc))
        return PassResult(name=name, state=PassState.FAILED, error=exc)

    state = PassState.CONNECTED
    observation: Optional[ExternalObservation] = None
    try:
        observation = session.observe(cr)
        state = PassState.OBSERVED

        if cr.deleting:
            if not observation.resource_exists:
                state = PassState.NOOP
            else:
                cr.set_conditions(deleting())
                session.delete(cr)
                state = PassState.DELETED
            cr.set_conditions(reconcile_success())
            return PassResult(name=name, state=state, observation=observation)

        if not observation.resource_exists:
            cr.set_conditions(creating())
            creation = session.create(cr)
            cr.set_conditions(reconcile_success())
            return PassResult(
                name=name,
                state=PassState.CREATED,
                observation=observation,
                connection_details=creation.connection_details,
            )

        if not observation.resource_up_to_date:
            session.update(cr)

        cr.set_conditions(reconcile_success())
        return PassResult(name=name, state=PassState.NOOP, observation=observation)

    except (KafkaUserError, ValueError) as exc:
        rejected = isinstance(exc, KafkaUserError) and exc.kind == ErrorKind.UPDATE_NOT_SUPPORTED
        logger.error("[reconcile] Pass for '%s' failed in state %s: %s", name, state.value, exc)
        cr.set_conditions(reconcile_error(exc))
        return PassResult(
            name=name,
            state=PassState.REJECTED if rejected else PassState.FAILED,
            observation=observation,
            error=exc,
        )
    finally:
        connector.disconnect(session)
