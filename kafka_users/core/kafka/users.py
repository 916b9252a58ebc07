"""Kafka SCRAM user operations: get, create, delete, compare."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from .client import KafkaAdminClient, ScramDelete, ScramUpsert
from .exceptions import (
    CreateFailedError,
    DeleteFailedError,
    DescribeFailedError,
    KafkaAdminError,
    MultipleCredentialsError,
    NoCreateResponseError,
    NoDeleteResponseError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from .scram import ScramMechanism

logger = logging.getLogger(__name__)


class UserParametersLike(Protocol):
    mechanism: str
    iterations: int


@dataclass(frozen=True)
class ScramUser:
    """A Kafka user with all configurable fields.

    ``mechanism`` is ``None`` only when observed with a mechanism this
    provider does not manage.
    """

    name: str
    mechanism: Optional[ScramMechanism]
    iterations: int


def get_user(client: KafkaAdminClient, name: str) -> ScramUser:
    """Fetch the user's single SCRAM credential from Kafka.

    Args:
        client: Open admin client
        name: User name (external name)

    Returns:
        Freshly observed ``ScramUser``

    Raises:
        DescribeFailedError: Describe request failed
        UserNotFoundError: Kafka has no credentials for ``name``
        MultipleCredentialsError: User has zero or several credentials
    """
    try:
        described = client.describe_user_scrams(name)
    except KafkaAdminError as exc:
        raise DescribeFailedError(cause=exc) from exc

    entry = described.get(name)
    if entry is None:
        raise DescribeFailedError(f"cannot describe user: no describe response for '{name}'")
    if entry.error is not None:
        raise UserNotFoundError(cause=entry.error) from entry.error
    if len(entry.credentials) != 1:
        raise MultipleCredentialsError(
            f"user has multiple credentials: '{name}' has {len(entry.credentials)} credential(s)"
        )

    credential = entry.credentials[0]
    return ScramUser(name=name, mechanism=credential.mechanism, iterations=credential.iterations)


def create_user(client: KafkaAdminClient, user: ScramUser, password: str) -> None:
    """Create the user's SCRAM credential.

    Re-describes the user first and refuses to overwrite an existing one.

    Raises:
        DescribeFailedError: Pre-check describe failed
        UserAlreadyExistsError: Credentials already exist for the name
        CreateFailedError: Request failed or broker rejected the upsert
        NoCreateResponseError: Broker response had no entry for the user
    """
    try:
        described = client.describe_user_scrams(user.name)
    except KafkaAdminError as exc:
        raise DescribeFailedError(cause=exc) from exc
    entry = described.get(user.name)
    if entry is None:
        raise DescribeFailedError(f"cannot describe user: no describe response for '{user.name}'")
    if entry.exists:
        raise UserAlreadyExistsError(f"user already exists: '{user.name}'")

    upsert = ScramUpsert(
        user=user.name,
        mechanism=user.mechanism,
        iterations=user.iterations,
        password=password,
    )
    try:
        resp = client.alter_user_scrams(upserts=[upsert])
    except KafkaAdminError as exc:
        raise CreateFailedError(cause=exc) from exc

    if user.name not in resp:
        raise NoCreateResponseError(f"no create response for user '{user.name}'")
    error = resp[user.name]
    if error is not None:
        raise CreateFailedError(cause=error) from error
    logger.info("[create] User '%s' created (%s, %d iterations)", user.name, user.mechanism, user.iterations)


def delete_user(client: KafkaAdminClient, user: ScramUser) -> None:
    """Delete the user's SCRAM credential for its mechanism.

    Raises:
        DeleteFailedError: Request failed or broker rejected the deletion
            (including deleting a user that does not exist)
        NoDeleteResponseError: Broker response had no entry for the user
    """
    deletion = ScramDelete(user=user.name, mechanism=user.mechanism)
    try:
        resp = client.alter_user_scrams(deletions=[deletion])
    except KafkaAdminError as exc:
        raise DeleteFailedError(cause=exc) from exc

    if user.name not in resp:
        raise NoDeleteResponseError(f"no delete response for user '{user.name}'")
    error = resp[user.name]
    if error is not None:
        raise DeleteFailedError(cause=error) from error
    logger.info("[delete] User '%s' deleted (%s)", user.name, user.mechanism)


def generate_user(name: str, params: UserParametersLike) -> ScramUser:
    """Convert desired user parameters into a ``ScramUser``.

    Raises:
        ValueError: Unsupported mechanism
    """
    return ScramUser(
        name=name,
        mechanism=ScramMechanism.from_string(params.mechanism),
        iterations=int(params.iterations),
    )


def is_up_to_date(params: UserParametersLike, observed: ScramUser) -> bool:
    """Return True when the observed user matches the desired parameters.

    The desired mechanism is parsed the same way ``generate_user`` parses it,
    so any spelling create accepts compares equal after creation.
    """
    try:
        desired = ScramMechanism.from_string(params.mechanism)
    except ValueError:
        return False
    if observed.mechanism is None or desired != observed.mechanism:
        return False
    if params.iterations != observed.iterations:
        return False
    return True
