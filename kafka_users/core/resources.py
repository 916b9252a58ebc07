"""Managed resource model for Kafka users.

A ``User`` is the declarative record a caller wants reconciled; it carries
the desired parameters, the provider config it authenticates with, and the
status conditions written back by a reconciliation pass.
"""
from __future__ import annotations
import datetime
from dataclasses import dataclass, field
from typing import Optional

CONDITION_READY = "Ready"
CONDITION_SYNCED = "Synced"

STATUS_TRUE = "True"
STATUS_FALSE = "False"


@dataclass(frozen=True)
class Condition:
    """Status condition of a managed resource."""

    type: str
    status: str
    reason: str
    message: str = ""
    last_transition_time: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )


def available() -> Condition:
    return Condition(CONDITION_READY, STATUS_TRUE, "Available")


def creating() -> Condition:
    return Condition(CONDITION_READY, STATUS_FALSE, "Creating")


def deleting() -> Condition:
    return Condition(CONDITION_READY, STATUS_FALSE, "Deleting")


def reconcile_success() -> Condition:
    return Condition(CONDITION_SYNCED, STATUS_TRUE, "ReconcileSuccess")


def reconcile_error(err: BaseException) -> Condition:
    return Condition(CONDITION_SYNCED, STATUS_FALSE, "ReconcileError", message=str(err))


@dataclass
class UserParameters:
    """Desired SCRAM settings for a user."""

    mechanism: str
    iterations: int


@dataclass
class User:
    """Declarative Kafka user resource.

    Attributes:
        name: Resource name
        for_provider: Desired SCRAM parameters
        provider_config_ref: Name of the ProviderConfig holding admin credentials
        external_name: Kafka user name (defaults to ``name``)
        write_connection_secret_to: Where generated connection details go
        deleting: Deletion has been requested
    """

    name: str
    for_provider: UserParameters
    provider_config_ref: str = "default"
    external_name: Optional[str] = None
    write_connection_secret_to: Optional[str] = None
    deleting: bool = False
    conditions: list[Condition] = field(default_factory=list)

    def get_external_name(self) -> str:
        return self.external_name or self.name

    def set_conditions(self, *conditions: Condition) -> None:
        """Set conditions, replacing any existing condition of the same type."""
        for condition in conditions:
            self.conditions = [c for c in self.conditions if c.type != condition.type]
            self.conditions.append(condition)

    def get_condition(self, condition_type: str) -> Optional[Condition]:
        return next((c for c in self.conditions if c.type == condition_type), None)
