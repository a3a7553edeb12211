"""Password hashing and user authentication against the document store."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from typing import TYPE_CHECKING, Optional

from models import User

if TYPE_CHECKING:
    from database import DocumentStore

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Return the base64-encoded SHA-256 digest of the UTF-8 password.

    Deterministic across runs, so stored hashes can be compared directly.
    """
    digest = hashlib.sha256(password.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


class CredentialService:
    def __init__(self, store: "DocumentStore") -> None:
        self.store = store

    def validate_user(self, user_name: str, password: str) -> Optional[User]:
        """Return the matching user, or None.

        Unknown user and wrong password produce the same result.
        """
        user = self.store.get_user_by_name(user_name)
        expected = hash_password(password).encode("utf-8")
        if user is not None and hmac.compare_digest(user.password_hash.encode("utf-8"), expected):
            return user
        logger.info(f"Failed login attempt for {user_name!r}")
        return None

    def register_user(self, user_name: str, password: str) -> User:
        """Create a regular (non-admin) user. Raises DuplicateUserError on a name clash."""
        user = User(user_name=user_name, password_hash=hash_password(password), is_admin=False)
        return self.store.add_user(user)
