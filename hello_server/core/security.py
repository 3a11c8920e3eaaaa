"""
Security utilities for Hello Server

Session secret handling: the secret comes from SESSION_SECRET, and when it is
missing a random one is generated for the lifetime of the process instead of
falling back to a shared, well-known value.
"""

import logging
import secrets
import string

from hello_server.core.config import Settings

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32

INSECURE_SECRETS = {
    "default_secret",
    "keyboard cat",
    "change-me",
    "secret",
    "password",
}


def generate_secure_secret_key(length: int = 64) -> str:
    """
    Generate a cryptographically secure secret key.

    Args:
        length: Length of the secret key (default: 64 characters)

    Returns:
        A secure random string suitable for signing session cookies
    """
    alphabet = string.ascii_letters + string.digits + "-_"
    return "".join(secrets.choice(alphabet) for _ in range(length))


def is_weak_secret(secret_key: str) -> bool:
    """Return True for secrets that are short or well-known defaults."""
    if len(secret_key) < MIN_SECRET_LENGTH:
        return True
    return secret_key.lower() in INSECURE_SECRETS


def resolve_session_secret(settings: Settings) -> str:
    """
    Return the key used to sign session cookies.

    Args:
        settings: Application settings

    Returns:
        SESSION_SECRET when configured, otherwise a freshly generated key.
        Sessions signed with a generated key do not survive a restart.
    """
    secret_key = settings.session_secret
    if secret_key:
        if is_weak_secret(secret_key):
            logger.warning(
                "SESSION_SECRET is weak (shorter than %d characters or a known default)",
                MIN_SECRET_LENGTH,
            )
        return secret_key

    logger.warning(
        "SESSION_SECRET is not set; using an ephemeral random secret. "
        "Sessions will be invalidated on restart."
    )
    return generate_secure_secret_key()
