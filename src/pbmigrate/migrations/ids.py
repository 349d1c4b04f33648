"""Collection id generation in PocketBase's format."""

from __future__ import annotations

import secrets

from pbmigrate.errors import MigrationError

_ID_CHARS = "abcdefghijklmnopqrstuvwxyz0123456789"

# PocketBase's fixed id for the default auth collection.
USERS_COLLECTION_ID = "_pb_users_auth_"

MAX_ATTEMPTS = 10


def _encode(data: bytes, length: int) -> str:
    return "".join(_ID_CHARS[b % len(_ID_CHARS)] for b in data[:length])


def generate_collection_id() -> str:
    """Random collection id: ``pb_`` followed by 15 lowercase alphanumerics."""
    return "pb_" + _encode(secrets.token_bytes(15), 15)


class CollectionIdRegistry:
    """Tracks collection ids handed out within one diff so none collide."""

    def __init__(self) -> None:
        self._ids: set[str] = set()

    def generate(self, collection_name: str | None = None) -> str:
        """Generate and register a unique id.

        The ``users`` collection always gets PocketBase's fixed id.

        Raises:
            MigrationError: If no unique id was found after MAX_ATTEMPTS.
        """
        if collection_name and collection_name.lower() == "users":
            self.register(USERS_COLLECTION_ID)
            return USERS_COLLECTION_ID

        for _ in range(MAX_ATTEMPTS):
            new_id = generate_collection_id()
            if not self.has(new_id):
                self.register(new_id)
                return new_id

        raise MigrationError(
            f"Failed to generate a unique collection id after {MAX_ATTEMPTS} attempts"
        )

    def has(self, collection_id: str) -> bool:
        return collection_id in self._ids

    def register(self, collection_id: str) -> None:
        self._ids.add(collection_id)
