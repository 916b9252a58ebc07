"""SCRAM mechanism names and their confluent-kafka counterparts."""
from __future__ import annotations

from enum import Enum

from confluent_kafka.admin import ScramMechanism as ConfluentScramMechanism


class ScramMechanism(str, Enum):
    """SASL SCRAM mechanisms Kafka can store credentials for.

    The value is the canonical string form used in desired-state records.
    """

    SCRAM_SHA_256 = "SCRAM-SHA-256"
    SCRAM_SHA_512 = "SCRAM-SHA-512"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, value: str) -> "ScramMechanism":
        """Parse a canonical mechanism name (case-insensitive, ``_`` or ``-``).

        Raises:
            ValueError: If the name is not a supported mechanism
        """
        normalized = (value or "").strip().upper().replace("_", "-")
        for mechanism in cls:
            if mechanism.value == normalized:
                return mechanism
        supported = ", ".join(m.value for m in cls)
        raise ValueError(f"Unsupported SCRAM mechanism '{value}' (expected one of: {supported})")

    @classmethod
    def from_confluent(cls, mechanism: ConfluentScramMechanism) -> "ScramMechanism":
        """Map confluent-kafka's enum (``SCRAM_SHA_256``...) to ours.

        Raises:
            ValueError: For ``UNKNOWN`` or any mechanism we do not manage
        """
        return cls.from_string(mechanism.name)

    def to_confluent(self) -> ConfluentScramMechanism:
        return ConfluentScramMechanism[self.name]
