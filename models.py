from __future__ import annotations

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


# --- Per-field default policies ---
# A record that survived a partial write must still load, so every field
# falls back to a default instead of raising.

def as_str(value) -> str:
    if value is None:
        return ""
    return str(value)


def as_int(value, default: int = 0) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_datetime(value) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except (TypeError, ValueError):
            if value is not None:
                logger.debug(f"Unparseable timestamp {value!r}, using current time")
            return utcnow()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Book:
    """A single catalog entry."""

    def __init__(self, title: str, author: str, category: str = "", summary: str = "", id: int = 0) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.category = category.strip()
        self.summary = summary

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (#{self.id})"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Book(id={self.id!r}, title={self.title!r})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "category": self.category,
            "summary": self.summary,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=as_int(data.get("id")),
            title=as_str(data.get("title")),
            author=as_str(data.get("author")),
            category=as_str(data.get("category")),
            summary=as_str(data.get("summary")),
        )


class Review:
    """A user's rating and comment on a book.

    ``created_at`` is always timezone-aware (UTC). The store overwrites it,
    together with ``id``, when the review is first saved.
    """

    def __init__(self, book_id: int, user_name: str, rating: int, comment: str = "",
                 id: int = 0, created_at: datetime | None = None) -> None:
        self.id = id
        self.book_id = book_id
        self.user_name = user_name
        self.rating = rating
        self.comment = comment
        self.created_at = created_at if created_at is not None else utcnow()

    def __repr__(self) -> str:  # pragma: no cover
        return f"Review(id={self.id!r}, book_id={self.book_id!r}, user_name={self.user_name!r})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bookId": self.book_id,
            "userName": self.user_name,
            "rating": self.rating,
            "comment": self.comment,
            "createdAt": self.created_at.isoformat(),
        }

    @staticmethod
    def from_dict(data: dict) -> "Review":
        return Review(
            id=as_int(data.get("id")),
            book_id=as_int(data.get("bookId")),
            user_name=as_str(data.get("userName")),
            rating=as_int(data.get("rating")),
            comment=as_str(data.get("comment")),
            created_at=as_datetime(data.get("createdAt")),
        )


class User:
    """A registered account. Only the password hash is ever stored."""

    def __init__(self, user_name: str, password_hash: str, is_admin: bool = False, id: int = 0) -> None:
        self.id = id
        self.user_name = user_name
        self.password_hash = password_hash
        self.is_admin = is_admin

    def __repr__(self) -> str:  # pragma: no cover
        return f"User(id={self.id!r}, user_name={self.user_name!r}, is_admin={self.is_admin!r})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userName": self.user_name,
            "passwordHash": self.password_hash,
            "isAdmin": self.is_admin,
        }

    @staticmethod
    def from_dict(data: dict) -> "User":
        return User(
            id=as_int(data.get("id")),
            user_name=as_str(data.get("userName")),
            password_hash=as_str(data.get("passwordHash")),
            is_admin=as_bool(data.get("isAdmin")),
        )


def is_admin_name(user_name: str) -> bool:
    return user_name.lower() == "admin"
