"""File-backed document store for the catalog.

Books, reviews and users live in three independent JSON documents inside one
data directory. Every mutation loads a whole collection, applies one change
and rewrites the file; ``os.replace`` keeps each save all-or-nothing from a
reader's point of view. A single lock per store serializes all mutations.
"""

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from auth import hash_password
from config import settings
from models import Book, Review, User, is_admin_name

logger = logging.getLogger(__name__)

BOOKS = "books"
REVIEWS = "reviews"
USERS = "users"

_ENTITY_TYPES: Dict[str, Callable[[dict], Any]] = {
    BOOKS: Book.from_dict,
    REVIEWS: Review.from_dict,
    USERS: User.from_dict,
}

SEED_BOOKS = [
    Book(
        id=1,
        title="El Quijote",
        author="Miguel de Cervantes",
        category="Clásico",
        summary="Las aventuras de Don Quijote y Sancho Panza.",
    ),
    Book(
        id=2,
        title="Cien años de soledad",
        author="Gabriel García Márquez",
        category="Realismo mágico",
        summary="La historia de la familia Buendía en Macondo.",
    ),
]


class StoreError(Exception):
    pass


class MalformedStoreError(StoreError):
    """A collection document could not be parsed at the root level."""


class DuplicateUserError(StoreError, ValueError):
    pass


class ReviewNotFoundError(StoreError, LookupError):
    pass


class DocumentStore:
    """Owns the on-disk representation of the three collections."""

    def __init__(self, data_dir: Optional[str] = None, admin_password: Optional[str] = None) -> None:
        self.data_dir = Path(data_dir or settings.data_dir)
        self.admin_password = admin_password if admin_password is not None else settings.admin_password
        self.paths: Dict[str, Path] = {
            name: self.data_dir / f"{name}.json" for name in (BOOKS, REVIEWS, USERS)
        }
        self._lock = threading.Lock()

    # ------------------------- Initialization ------------------------- #
    def initialize(self) -> None:
        """Create missing documents with default content, then repair admin flags.

        Safe to call on every start; existing valid data is left alone.
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self._ensure_files_exist()
            self._ensure_admin_flags()

    def _ensure_files_exist(self) -> None:
        if not self.paths[BOOKS].exists():
            self._write_records(BOOKS, [b.to_dict() for b in SEED_BOOKS])
            logger.info(f"Created {self.paths[BOOKS]} with {len(SEED_BOOKS)} seed books")

        if not self.paths[REVIEWS].exists():
            self._write_records(REVIEWS, [])
            logger.info(f"Created empty {self.paths[REVIEWS]}")

        if not self.paths[USERS].exists():
            admin = User(id=1, user_name="admin", password_hash=hash_password(self.admin_password), is_admin=True)
            self._write_records(USERS, [admin.to_dict()])
            logger.info(f"Created {self.paths[USERS]} with bootstrap administrator")

    def _ensure_admin_flags(self) -> None:
        """Only the user named ``admin`` (any case) may carry the admin flag."""
        records = self._read_records(USERS)
        users = [r for r in records if isinstance(r, dict)]
        if not users:
            return

        for record in users:
            user_name = record.get("userName")
            should_be_admin = is_admin_name(user_name if isinstance(user_name, str) else "")
            if record.get("isAdmin") != should_be_admin:
                logger.warning(f"Repairing admin flag for user {user_name!r}: isAdmin={should_be_admin}")
            record["isAdmin"] = should_be_admin

        self._write_records(USERS, records)

    # ------------------------- Raw document I/O ------------------------- #
    def _read_records(self, collection: str) -> List[Any]:
        path = self.paths[collection]
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise MalformedStoreError(f"{path} is not valid JSON: {e}") from e

        if not isinstance(document, dict) or not isinstance(document.get(collection), list):
            raise MalformedStoreError(f"{path} must be an object with a '{collection}' list")
        return document[collection]

    def _write_records(self, collection: str, records: List[Any]) -> None:
        """Replace a document atomically: temp file in the same directory, then rename."""
        path = self.paths[collection]
        fd, tmp_name = tempfile.mkstemp(prefix=f".{collection}.", suffix=".tmp", dir=str(self.data_dir))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({collection: records}, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise

    # ------------------------- Collections ------------------------- #
    def load(self, collection: str) -> list:
        """Load a whole collection into fresh entity instances."""
        parse = _ENTITY_TYPES[collection]
        entities = []
        for record in self._read_records(collection):
            if not isinstance(record, dict):
                logger.warning(f"Skipping non-object record in {collection}: {record!r}")
                continue
            entities.append(parse(record))
        return entities

    def save(self, collection: str, entities: list) -> None:
        self._write_records(collection, [e.to_dict() for e in entities])

    def load_books(self) -> List[Book]:
        return self.load(BOOKS)

    def load_reviews(self) -> List[Review]:
        return self.load(REVIEWS)

    def load_users(self) -> List[User]:
        return self.load(USERS)

    def save_books(self, books: List[Book]) -> None:
        self.save(BOOKS, books)

    def save_reviews(self, reviews: List[Review]) -> None:
        self.save(REVIEWS, reviews)

    def save_users(self, users: List[User]) -> None:
        self.save(USERS, users)

    @contextmanager
    def transaction(self, collection: str) -> Iterator[list]:
        """Hold the store lock around one load-mutate-save cycle.

        The yielded list is written back only if the block exits normally.
        """
        with self._lock:
            records = self._read_records(collection)
            parse = _ENTITY_TYPES[collection]
            parsed = [(r, parse(r)) for r in records if isinstance(r, dict)]
            entities = [entity for _, entity in parsed]
            yield entities
            self._write_records(collection, self._merge(records, parsed, entities))

    @staticmethod
    def _merge(records: List[Any], parsed: list, entities: list) -> List[Any]:
        """Rebuild the raw record list around the mutated entities.

        Non-object entries and unknown keys are written back as they were read.
        Removed entities drop their record; new ones are appended.
        """
        alive = {id(e) for e in entities}
        seen = set()
        entity_for = {id(record): entity for record, entity in parsed}
        merged = []
        for record in records:
            if not isinstance(record, dict):
                merged.append(record)
                continue
            entity = entity_for[id(record)]
            if id(entity) in alive:
                merged.append({**record, **entity.to_dict()})
                seen.add(id(entity))
        merged.extend(e.to_dict() for e in entities if id(e) not in seen)
        return merged

    @staticmethod
    def next_id(entities: list) -> int:
        return max((e.id for e in entities), default=0) + 1

    # ------------------------- Users ------------------------- #
    def get_user_by_name(self, user_name: str) -> Optional[User]:
        wanted = user_name.lower()
        for user in self.load_users():
            if user.user_name.lower() == wanted:
                return user
        return None

    def add_user(self, user: User) -> User:
        with self.transaction(USERS) as users:
            wanted = user.user_name.lower()
            if any(u.user_name.lower() == wanted for u in users):
                raise DuplicateUserError(f"User name '{user.user_name}' already exists.")
            user.id = self.next_id(users)
            users.append(user)
        logger.info(f"Registered user {user.user_name!r} (id={user.id})")
        return user
