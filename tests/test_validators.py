import pytest

from utils.validators import TextValidator, UserValidator


@pytest.mark.parametrize("name,ok", [
    ("alice", True),
    ("bob.smith-2", True),
    ("ab", False),
    ("has space", False),
    ("", False),
    (None, False),
])
def test_validate_user_name(name, ok):
    assert UserValidator.validate_user_name(name) is ok


def test_validate_password():
    assert UserValidator.validate_password("long enough")
    assert not UserValidator.validate_password("abc")
    assert not UserValidator.validate_password("    ")
    assert not UserValidator.validate_password(None)


def test_title_and_author():
    assert TextValidator.validate_title("Dune")
    assert not TextValidator.validate_title("1984 ")  # digits only
    assert TextValidator.validate_author("Frank Herbert")
    assert not TextValidator.validate_author("12345")


def test_sanitize_text_strips_tags():
    assert TextValidator.sanitize_text("<b>Great</b> read ") == "Great read"
    assert TextValidator.sanitize_text(None) == ""
