"""Kafka user-management exceptions for error handling.

Every error carries an ``ErrorKind`` so callers can branch on the kind of
failure rather than on message text. The underlying cause, when there is
one, is kept on ``cause`` and chained via ``__cause__``.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Distinguishing kinds of failure."""

    ADMIN_API = "admin_api"
    USER_NOT_FOUND = "user_not_found"
    MULTIPLE_CREDENTIALS = "multiple_credentials"
    DESCRIBE_FAILED = "describe_failed"
    ALREADY_EXISTS = "already_exists"
    NO_CREATE_RESPONSE = "no_create_response"
    CREATE_FAILED = "create_failed"
    NO_DELETE_RESPONSE = "no_delete_response"
    DELETE_FAILED = "delete_failed"
    PASSWORD_GENERATION_FAILED = "password_generation_failed"
    UPDATE_NOT_SUPPORTED = "update_not_supported"
    TRACK_USAGE_FAILED = "track_usage_failed"
    GET_PROVIDER_CONFIG_FAILED = "get_provider_config_failed"
    GET_CREDENTIALS_FAILED = "get_credentials_failed"
    NEW_CLIENT_FAILED = "new_client_failed"
    NOT_A_USER = "not_a_user"
    SESSION_CLOSED = "session_closed"


class KafkaUserError(Exception):
    """Base exception for all Kafka user operations.

    Attributes:
        kind: Machine-testable failure kind
        message: Human readable context
        cause: Wrapped underlying error, if any
    """

    kind: ErrorKind = ErrorKind.ADMIN_API
    default_message: str = "kafka user operation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        cause: Optional[BaseException] = None,
        kind: Optional[ErrorKind] = None,
    ):
        if kind is not None:
            self.kind = kind
        self.message = message or self.default_message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class KafkaAdminError(KafkaUserError):
    """Transport-level error from the Kafka admin API.

    Attributes:
        code: librdkafka error code name (e.g. ``_TIMED_OUT``)
        operation: Admin operation that failed
    """

    kind = ErrorKind.ADMIN_API

    def __init__(self, code: str, message: str, operation: str):
        self.code = code
        self.operation = operation
        super().__init__(f"[{code}] {operation}: {message}")


class UserNotFoundError(KafkaUserError):
    """User lookup failed - no SCRAM credentials exist for the name."""

    kind = ErrorKind.USER_NOT_FOUND
    default_message = "user does not exist"


class MultipleCredentialsError(KafkaUserError):
    """User exists with a credential count other than exactly one."""

    kind = ErrorKind.MULTIPLE_CREDENTIALS
    default_message = "user has multiple credentials"


class DescribeFailedError(KafkaUserError):
    kind = ErrorKind.DESCRIBE_FAILED
    default_message = "cannot describe user"


class UserAlreadyExistsError(KafkaUserError):
    """User creation refused - credentials already exist for the name."""

    kind = ErrorKind.ALREADY_EXISTS
    default_message = "user already exists"


class NoCreateResponseError(KafkaUserError):
    kind = ErrorKind.NO_CREATE_RESPONSE
    default_message = "no create response for user"


class CreateFailedError(KafkaUserError):
    kind = ErrorKind.CREATE_FAILED
    default_message = "cannot create user"


class NoDeleteResponseError(KafkaUserError):
    kind = ErrorKind.NO_DELETE_RESPONSE
    default_message = "no delete response for user"


class DeleteFailedError(KafkaUserError):
    kind = ErrorKind.DELETE_FAILED
    default_message = "cannot delete user"


class PasswordGenerationError(KafkaUserError):
    kind = ErrorKind.PASSWORD_GENERATION_FAILED
    default_message = "cannot generate password"


class UpdateNotSupportedError(KafkaUserError):
    """Changing mechanism or iterations of an existing user is not supported."""

    kind = ErrorKind.UPDATE_NOT_SUPPORTED
    default_message = "updates are not supported"


class ConnectError(KafkaUserError):
    """Session setup failed; ``kind`` tells which setup step broke."""

    kind = ErrorKind.NEW_CLIENT_FAILED
    default_message = "cannot create new Kafka client"


class NotAUserError(KafkaUserError):
    kind = ErrorKind.NOT_A_USER
    default_message = "managed resource is not a User custom resource"


class SessionClosedError(KafkaUserError):
    kind = ErrorKind.SESSION_CLOSED
    default_message = "session is closed"
