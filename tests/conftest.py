"""Pytest shared fixtures: in-memory Kafka SCRAM admin and sample resources."""
import json
import os
import pathlib
import sys
from concurrent.futures import Future
from types import SimpleNamespace
from typing import Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from confluent_kafka import KafkaError, KafkaException
from confluent_kafka.admin import (
    ScramCredentialInfo,
    ScramMechanism as ConfluentScramMechanism,
    UserScramCredentialDeletion,
)

from kafka_users.core.kafka import KafkaAdminClient
from kafka_users.core.providers import (
    CredentialsSource,
    ProviderConfig,
    ProviderConfigStore,
    ProviderCredentials,
)
from kafka_users.core.reconciler import Connector
from kafka_users.core.resources import User, UserParameters

CREDENTIALS_ENV = "KAFKA_TEST_ADMIN_CREDENTIALS"

ADMIN_CREDENTIALS = {
    "brokers": ["kafka-0:9092", "kafka-1:9092"],
    "sasl": {"mechanism": "SCRAM-SHA-512", "username": "admin", "password": "admin-secret"},
}


def kafka_exception(code: int) -> KafkaException:
    return KafkaException(KafkaError(code))


# ─────────────────────────────────────────────────────────────────────────────
# Fake AdminClient
# ─────────────────────────────────────────────────────────────────────────────
class FakeScramAdmin:
    """In-memory stand-in for the SCRAM APIs of confluent-kafka's AdminClient.

    Stores credentials per user and mechanism, returns per-user futures the
    way the real client does, and lets tests inject failures.
    """

    def __init__(self):
        self.credentials: dict[str, dict[ConfluentScramMechanism, tuple[int, bytes]]] = {}
        self.describe_calls: list[list[str]] = []
        self.alter_calls: list[list] = []
        self.request_timeouts: list[Optional[float]] = []
        self.describe_error: Optional[BaseException] = None
        self.describe_user_error: Optional[int] = None
        self.alter_error: Optional[BaseException] = None
        self.alter_user_error: Optional[int] = None
        self.drop_alter_responses = False
        self.polls = 0

    def seed(self, user: str, mechanism: ConfluentScramMechanism, iterations: int, password: bytes = b"seeded"):
        self.credentials.setdefault(user, {})[mechanism] = (iterations, password)

    def describe_user_scram_credentials(self, users=None, request_timeout=None):
        self.describe_calls.append(list(users or []))
        self.request_timeouts.append(request_timeout)
        if self.describe_error is not None:
            raise self.describe_error

        futures = {}
        for user in users or []:
            future = Future()
            creds = self.credentials.get(user)
            if self.describe_user_error is not None:
                future.set_exception(kafka_exception(self.describe_user_error))
            elif not creds:
                future.set_exception(kafka_exception(KafkaError.RESOURCE_NOT_FOUND))
            else:
                future.set_result(SimpleNamespace(
                    user=user,
                    scram_credential_infos=[
                        ScramCredentialInfo(mechanism, iterations)
                        for mechanism, (iterations, _) in creds.items()
                    ],
                ))
            futures[user] = future
        return futures

    def alter_user_scram_credentials(self, alterations, request_timeout=None):
        self.alter_calls.append(list(alterations))
        self.request_timeouts.append(request_timeout)
        if self.alter_error is not None:
            raise self.alter_error

        futures = {}
        for alteration in alterations:
            future = Future()
            if self.alter_user_error is not None:
                future.set_exception(kafka_exception(self.alter_user_error))
            elif isinstance(alteration, UserScramCredentialDeletion):
                creds = self.credentials.get(alteration.user, {})
                if alteration.mechanism not in creds:
                    future.set_exception(kafka_exception(KafkaError.RESOURCE_NOT_FOUND))
                else:
                    del creds[alteration.mechanism]
                    if not creds:
                        del self.credentials[alteration.user]
                    future.set_result(None)
            else:
                info = alteration.scram_credential_info
                self.seed(alteration.user, info.mechanism, info.iterations, alteration.password)
                future.set_result(None)
            if not self.drop_alter_responses:
                futures[alteration.user] = future
        return futures

    def poll(self, timeout=None):
        self.polls += 1
        return 0


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def fake_admin():
    return FakeScramAdmin()


@pytest.fixture()
def admin_credentials():
    return dict(ADMIN_CREDENTIALS)


@pytest.fixture()
def admin_client(fake_admin):
    return KafkaAdminClient(fake_admin, request_timeout=2.0)


@pytest.fixture()
def provider_configs():
    return ProviderConfigStore([
        ProviderConfig(
            name="default",
            credentials=ProviderCredentials(source=CredentialsSource.ENVIRONMENT, env=CREDENTIALS_ENV),
        ),
    ])


@pytest.fixture()
def client_factory(fake_admin):
    """Client factory recording the credentials each session was built from."""
    calls = SimpleNamespace(credentials=[], clients=[])

    def _new_client(credentials, request_timeout=2.0):
        calls.credentials.append(credentials)
        client = KafkaAdminClient(fake_admin, request_timeout=request_timeout)
        calls.clients.append(client)
        return client

    _new_client.calls = calls
    return _new_client


@pytest.fixture()
def connector(monkeypatch, provider_configs, client_factory):
    monkeypatch.setenv(CREDENTIALS_ENV, json.dumps(ADMIN_CREDENTIALS))
    return Connector(
        provider_configs,
        new_client_fn=client_factory,
        password_fn=lambda: "generated-password-0123456789",
    )


@pytest.fixture()
def make_user():
    def _make(name="alice", mechanism="SCRAM-SHA-512", iterations=4096, **kwargs):
        kwargs.setdefault("write_connection_secret_to", f"{name}-kafka")
        return User(name=name, for_provider=UserParameters(mechanism=mechanism, iterations=iterations), **kwargs)

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires a running Kafka broker)"
    )


def pytest_collection_modifyitems(config, items):
    if os.environ.get("KAFKA_BOOTSTRAP_SERVERS"):
        return
    skip = pytest.mark.skip(reason="KAFKA_BOOTSTRAP_SERVERS not set")
    for item in items:
        if item.get_closest_marker("integration"):
            item.add_marker(skip)
