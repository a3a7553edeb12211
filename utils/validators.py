import re
from typing import Optional

MIN_RATING = 1
MAX_RATING = 5


class UserValidator:
    """Checks applied to registration input before it reaches the store."""

    USER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,32}$")
    MIN_PASSWORD_LENGTH = 4

    @staticmethod
    def validate_user_name(user_name: Optional[str]) -> bool:
        if user_name is None:
            return False
        return bool(UserValidator.USER_NAME_PATTERN.match(user_name))

    @staticmethod
    def validate_password(password: Optional[str]) -> bool:
        if password is None:
            return False
        return len(password) >= UserValidator.MIN_PASSWORD_LENGTH and not password.isspace()


class TextValidator:
    """Checks for free text entered when cataloguing a book."""

    TAG_PATTERN = re.compile(r"<[^>]*>")

    @staticmethod
    def _clean(text: Optional[str]) -> str:
        return text.strip() if text else ""

    @staticmethod
    def validate_title(title: Optional[str]) -> bool:
        # a title needs at least one letter
        return any(c.isalpha() for c in TextValidator._clean(title))

    @staticmethod
    def validate_author(author: Optional[str]) -> bool:
        name = TextValidator._clean(author)
        return bool(name) and not name.isdigit()

    @staticmethod
    def sanitize_text(text: Optional[str]) -> str:
        """Drop markup from entered text before it is stored."""
        if text is None:
            return ""
        return TextValidator.TAG_PATTERN.sub("", text).strip()
