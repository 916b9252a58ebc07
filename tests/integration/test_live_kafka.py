"""
Integration tests against a real Kafka broker.

Run with KAFKA_BOOTSTRAP_SERVERS set (and KAFKA_ADMIN_USERNAME /
KAFKA_ADMIN_PASSWORD when the listener requires SASL/SCRAM):

    KAFKA_BOOTSTRAP_SERVERS=localhost:9092 pytest -m integration
"""
import json
import os
import uuid

import pytest

from kafka_users.core.kafka import (
    ScramMechanism,
    ScramUser,
    UserAlreadyExistsError,
    UserNotFoundError,
    create_user,
    delete_user,
    get_user,
    new_admin_client,
)

pytestmark = pytest.mark.integration


@pytest.fixture()
def live_client():
    creds = {"brokers": os.environ.get("KAFKA_BOOTSTRAP_SERVERS", "").split(",")}
    if os.environ.get("KAFKA_ADMIN_USERNAME"):
        creds["sasl"] = {
            "mechanism": os.environ.get("KAFKA_ADMIN_MECHANISM", "SCRAM-SHA-512"),
            "username": os.environ["KAFKA_ADMIN_USERNAME"],
            "password": os.environ.get("KAFKA_ADMIN_PASSWORD", ""),
        }
    client = new_admin_client(json.dumps(creds).encode(), request_timeout=15.0)
    yield client
    client.close()


def test_user_lifecycle(live_client):
    name = f"it-{uuid.uuid4().hex[:10]}"
    user = ScramUser(name=name, mechanism=ScramMechanism.SCRAM_SHA_256, iterations=4096)

    with pytest.raises(UserNotFoundError):
        get_user(live_client, name)

    create_user(live_client, user, "integration-password-0123456789")
    try:
        observed = get_user(live_client, name)
        assert observed.mechanism == ScramMechanism.SCRAM_SHA_256
        assert observed.iterations == 4096

        with pytest.raises(UserAlreadyExistsError):
            create_user(live_client, user, "integration-password-0123456789")
    finally:
        delete_user(live_client, user)

    with pytest.raises(UserNotFoundError):
        get_user(live_client, name)
