"""Reconcile Kafka SCRAM users from a desired-state manifest.

This module serves as a CLI driver around kafka_users.core: it runs one
reconciliation pass per user, publishes generated passwords as connection
details, and records lifecycle events in the audit trail.
"""
from __future__ import annotations
import argparse
import functools
import logging
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from kafka_users.config.settings import AppConfig, load_settings
from kafka_users.core.credentials import generate_password, write_connection_details
from kafka_users.core.kafka import KafkaUserError, new_admin_client
from kafka_users.core.manifest import Manifest, ManifestError, load_manifest
from kafka_users.core.reconciler import Connector, PassResult, PassState, reconcile_once
from kafka_users.core.resources import User
from scripts import audit

logger = logging.getLogger("scram_users")


def build_connector(manifest: Manifest, settings: AppConfig) -> Connector:
    """Wire a Connector from the manifest's provider configs and settings."""
    return Connector(
        manifest.provider_configs,
        new_client_fn=new_admin_client,
        password_fn=functools.partial(generate_password, settings.password_length),
        secrets_dir=settings.secrets_dir,
        request_timeout=settings.request_timeout,
    )


def publish_result(result: PassResult, user: User, settings: AppConfig, operator: str) -> bool:
    """Persist connection details and audit the outcome of a pass.

    Returns:
        True if the pass and its follow-up succeeded
    """
    mechanism = user.for_provider.mechanism
    iterations = user.for_provider.iterations
    common = dict(operator=operator, provider_config=user.provider_config_ref)

    if result.state == PassState.CREATED:
        try:
            target = write_connection_details(user, result.connection_details or {}, settings.connection_secret_dir)
            if target is None:
                raise ValueError("no writeConnectionSecretToRef, generated password discarded")
        except (OSError, ValueError) as e:
            print(f"[create] Error: user '{result.name}' created but connection details were not written: {e}", file=sys.stderr)
            audit.safe_log_user_event(
                "user_create",
                result.name,
                details={"mechanism": mechanism, "iterations": iterations, "error": str(e)},
                success=False,
                **common,
            )
            return False
        audit.safe_log_user_event(
            "user_create",
            result.name,
            details={
                "mechanism": mechanism,
                "iterations": iterations,
                "connection_secret": str(target),
            },
            **common,
        )
        return True

    if result.state == PassState.DELETED:
        audit.safe_log_user_event("user_delete", result.name, details={"mechanism": mechanism}, **common)
        return True

    if result.state == PassState.REJECTED:
        audit.safe_log_user_event(
            "user_update_rejected",
            result.name,
            details={"mechanism": mechanism, "iterations": iterations, "error": str(result.error)},
            success=False,
            **common,
        )
        return False

    if result.state == PassState.FAILED:
        kind = getattr(result.error, "kind", None)
        audit.safe_log_user_event(
            "user_reconcile_failed",
            result.name,
            details={"kind": kind.value if kind else type(result.error).__name__, "error": str(result.error)},
            success=False,
            **common,
        )
        return False

    return True


def _run_pass(connector: Connector, user: User, settings: AppConfig, operator: str) -> bool:
    result = reconcile_once(connector, user)
    ok = publish_result(result, user, settings, operator)
    line = f"{result.name}: {result.state.value}"
    if result.error is not None:
        print(f"{line} ({result.error})", file=sys.stderr)
    else:
        print(line)
    return ok


def main(argv: list[str] | None = None) -> None:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Kafka SCRAM user reconciler")
    parser.add_argument("--operator", default="automation",
                        help="Operator identifier for audit logs (default: automation)")
    parser.add_argument("--secrets-dir", help="Directory holding Secret-sourced provider credentials")
    parser.add_argument("--connection-dir", help="Directory connection details are written to")
    parser.add_argument("--timeout", type=float, help="Kafka request timeout in seconds")

    sub = parser.add_subparsers(dest="cmd")

    rc = sub.add_parser("reconcile", help="Run one pass for every user (or one user)")
    rc.add_argument("--manifest", required=True)
    rc.add_argument("--name")

    ob = sub.add_parser("observe", help="Report whether a user exists and is up to date")
    ob.add_argument("--manifest", required=True)
    ob.add_argument("--name", required=True)

    dl = sub.add_parser("delete", help="Delete a user's SCRAM credential")
    dl.add_argument("--manifest", required=True)
    dl.add_argument("--name", required=True)

    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return

    settings = load_settings()
    if args.secrets_dir:
        settings.secrets_dir = Path(args.secrets_dir)
    if args.connection_dir:
        settings.connection_secret_dir = Path(args.connection_dir)
    if args.timeout is not None:
        if args.timeout <= 0:
            parser.error("--timeout must be positive")
        settings.request_timeout = args.timeout

    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        manifest = load_manifest(args.manifest)
        users = [manifest.get_user(args.name)] if args.name else list(manifest.users)
    except (ManifestError, OSError) as e:
        parser.error(str(e))

    connector = build_connector(manifest, settings)

    if args.cmd == "observe":
        user = users[0]
        try:
            session = connector.connect(user)
        except KafkaUserError as e:
            print(f"[observe] Error: {e}", file=sys.stderr)
            sys.exit(1)
        try:
            observation = session.observe(user)
        except KafkaUserError as e:
            print(f"[observe] Error ({e.kind.value}): {e}", file=sys.stderr)
            sys.exit(1)
        finally:
            connector.disconnect(session)
        print(f"{user.get_external_name()}: exists={observation.resource_exists} "
              f"up_to_date={observation.resource_up_to_date}")
    elif args.cmd == "delete":
        user = users[0]
        user.deleting = True
        if not _run_pass(connector, user, settings, args.operator):
            sys.exit(1)
    elif args.cmd == "reconcile":
        failures = 0
        for user in users:
            if not _run_pass(connector, user, settings, args.operator):
                failures += 1
        if failures:
            print(f"[reconcile] {failures} of {len(users)} user(s) failed", file=sys.stderr)
            sys.exit(1)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
