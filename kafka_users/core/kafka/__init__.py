"""Kafka SCRAM user administration library.

Architecture:
- client.py: Admin client wrapper (timeouts, error classification, construction from credentials)
- scram.py: SCRAM mechanism names
- users.py: User operations (get, create, delete, compare)
- exceptions.py: Typed exceptions carrying an ``ErrorKind``

Usage:
    from kafka_users.core.kafka import new_admin_client, get_user

    client = new_admin_client(credentials_bytes)
    try:
        user = get_user(client, "alice")
    finally:
        client.close()
"""
from .client import (
    KafkaAdminClient,
    CredentialInfo,
    DescribedUser,
    ScramUpsert,
    ScramDelete,
    new_admin_client,
    parse_credentials,
    build_client_config,
    REQUEST_TIMEOUT,
)
from .exceptions import (
    ErrorKind,
    KafkaUserError,
    KafkaAdminError,
    UserNotFoundError,
    MultipleCredentialsError,
    DescribeFailedError,
    UserAlreadyExistsError,
    NoCreateResponseError,
    CreateFailedError,
    NoDeleteResponseError,
    DeleteFailedError,
    PasswordGenerationError,
    UpdateNotSupportedError,
    ConnectError,
    NotAUserError,
    SessionClosedError,
)
from .scram import ScramMechanism
from .users import (
    ScramUser,
    get_user,
    create_user,
    delete_user,
    generate_user,
    is_up_to_date,
)

__all__ = [
    # Client
    "KafkaAdminClient",
    "CredentialInfo",
    "DescribedUser",
    "ScramUpsert",
    "ScramDelete",
    "new_admin_client",
    "parse_credentials",
    "build_client_config",
    "REQUEST_TIMEOUT",

    # Exceptions
    "ErrorKind",
    "KafkaUserError",
    "KafkaAdminError",
    "UserNotFoundError",
    "MultipleCredentialsError",
    "DescribeFailedError",
    "UserAlreadyExistsError",
    "NoCreateResponseError",
    "CreateFailedError",
    "NoDeleteResponseError",
    "DeleteFailedError",
    "PasswordGenerationError",
    "UpdateNotSupportedError",
    "ConnectError",
    "NotAUserError",
    "SessionClosedError",

    # Users
    "ScramMechanism",
    "ScramUser",
    "get_user",
    "create_user",
    "delete_user",
    "generate_user",
    "is_up_to_date",
]
