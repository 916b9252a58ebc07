"""Generated user credentials: password generation and connection details."""
from __future__ import annotations
import logging
import secrets
import string
from pathlib import Path
from typing import Mapping

from .resources import User

logger = logging.getLogger(__name__)

PASSWORD_LENGTH = 27
MIN_PASSWORD_LENGTH = 16

# Connection details key holding the generated password
PASSWORD_KEY = "password"


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    """Generate a random alphanumeric password.

    Args:
        length: Password length (default: 27)

    Returns:
        Random password of letters and digits

    Raises:
        ValueError: If length is below the minimum
    """
    if length < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password length must be at least {MIN_PASSWORD_LENGTH}")
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def write_connection_details(resource: User, details: Mapping[str, bytes], base_dir: Path) -> Path | None:
    """Persist connection details as one file per key.

    Files land in ``base_dir/<write_connection_secret_to>/<key>`` with mode
    0600. Resources without a connection secret target are skipped.

    Returns:
        Directory written to, or None if the resource has no target

    Raises:
        ValueError: If the target does not resolve to a directory directly under ``base_dir``
    """
    if not resource.write_connection_secret_to:
        logger.warning("User '%s' has no connection secret target; details not written", resource.name)
        return None

    base = Path(base_dir).resolve()
    target = (base / resource.write_connection_secret_to).resolve()
    if target.parent != base:
        raise ValueError(
            f"Connection secret target '{resource.write_connection_secret_to}' "
            f"for user '{resource.name}' is outside {base}"
        )
    target.mkdir(parents=True, exist_ok=True)
    target.chmod(0o700)
    for key, value in details.items():
        path = target / key
        path.write_bytes(value)
        path.chmod(0o600)
    logger.info("Wrote %d connection detail(s) for '%s' to %s", len(details), resource.name, target)
    return target
