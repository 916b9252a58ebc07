"""Unit tests for the Kafka admin client wrapper and credential parsing."""

import json
from concurrent.futures import Future

import pytest

from kafka_users.core.kafka import (
    KafkaAdminClient,
    KafkaAdminError,
    ScramMechanism,
    ScramUpsert,
    build_client_config,
    new_admin_client,
    parse_credentials,
)


class _HangingAdmin:
    """Admin whose futures never complete."""

    def describe_user_scram_credentials(self, users=None, request_timeout=None):
        return {user: Future() for user in users}

    def alter_user_scram_credentials(self, alterations, request_timeout=None):
        return {a.user: Future() for a in alterations}


def test_describe_passes_request_timeout(fake_admin):
    client = KafkaAdminClient(fake_admin, request_timeout=3.5)
    client.describe_user_scrams("alice")
    assert fake_admin.request_timeouts == [3.5]


def test_describe_records_missing_user(admin_client):
    result = admin_client.describe_user_scrams("ghost")
    assert not result["ghost"].exists
    assert result["ghost"].error.code == "RESOURCE_NOT_FOUND"


def test_describe_timeout_raises_admin_error():
    client = KafkaAdminClient(_HangingAdmin(), request_timeout=0.01)
    with pytest.raises(KafkaAdminError) as excinfo:
        client.describe_user_scrams("alice")
    assert excinfo.value.code == "_TIMED_OUT"


def test_alter_timeout_raises_admin_error():
    client = KafkaAdminClient(_HangingAdmin(), request_timeout=0.01)
    upsert = ScramUpsert("alice", ScramMechanism.SCRAM_SHA_256, 4096, "pw")
    with pytest.raises(KafkaAdminError) as excinfo:
        client.alter_user_scrams(upserts=[upsert])
    assert excinfo.value.operation == "AlterUserScramCredentials"


def test_close_is_idempotent(fake_admin, admin_client):
    admin_client.close()
    admin_client.close()
    assert admin_client.closed
    assert fake_admin.polls == 1


def test_closed_client_refuses_requests(admin_client):
    admin_client.close()
    with pytest.raises(KafkaAdminError):
        admin_client.describe_user_scrams("alice")


# ============================================================================
# Credentials → librdkafka config
# ============================================================================

def test_parse_credentials_requires_brokers():
    with pytest.raises(ValueError, match="broker"):
        parse_credentials(json.dumps({"brokers": []}).encode())


def test_parse_credentials_rejects_invalid_json():
    with pytest.raises(ValueError, match="JSON"):
        parse_credentials(b"not-json")


def test_parse_credentials_rejects_incomplete_sasl():
    creds = {"brokers": ["k:9092"], "sasl": {"mechanism": "PLAIN", "username": "admin"}}
    with pytest.raises(ValueError, match="password"):
        parse_credentials(json.dumps(creds).encode())


def test_parse_credentials_rejects_unknown_sasl_mechanism():
    creds = {"brokers": ["k:9092"], "sasl": {"mechanism": "GSSAPI", "username": "a", "password": "b"}}
    with pytest.raises(ValueError, match="GSSAPI"):
        parse_credentials(json.dumps(creds).encode())


def test_build_client_config_sasl_plaintext():
    conf = build_client_config({
        "brokers": ["k0:9092", "k1:9092"],
        "sasl": {"mechanism": "scram-sha-512", "username": "admin", "password": "secret"},
    })
    assert conf == {
        "bootstrap.servers": "k0:9092,k1:9092",
        "security.protocol": "SASL_PLAINTEXT",
        "sasl.mechanism": "SCRAM-SHA-512",
        "sasl.username": "admin",
        "sasl.password": "secret",
    }


def test_build_client_config_sasl_ssl_with_ca():
    conf = build_client_config({
        "brokers": ["k0:9093"],
        "sasl": {"mechanism": "PLAIN", "username": "admin", "password": "secret"},
        "tls": {"enabled": True, "ca_location": "/etc/kafka/ca.pem", "insecure_skip_verify": True},
    })
    assert conf["security.protocol"] == "SASL_SSL"
    assert conf["ssl.ca.location"] == "/etc/kafka/ca.pem"
    assert conf["enable.ssl.certificate.verification"] is False


def test_build_client_config_plaintext():
    conf = build_client_config({"brokers": ["k0:9092"]})
    assert conf == {"bootstrap.servers": "k0:9092", "security.protocol": "PLAINTEXT"}


def test_new_admin_client_uses_factory(fake_admin):
    seen = {}

    def factory(conf):
        seen.update(conf)
        return fake_admin

    creds = json.dumps({"brokers": ["k0:9092"]}).encode()
    client = new_admin_client(creds, request_timeout=4.0, admin_factory=factory)

    assert seen["bootstrap.servers"] == "k0:9092"
    assert client.request_timeout == 4.0
    assert client.describe_user_scrams("nobody")["nobody"].exists is False
