import pytest

from auth import hash_password
from database import DuplicateUserError


def test_hash_password_is_deterministic():
    assert hash_password("correct horse") == hash_password("correct horse")


def test_hash_password_distinguishes_inputs():
    corpus = ["", "a", "A", "admin", "admin ", "contraseña", "password1", "password2"]
    digests = {hash_password(p) for p in corpus}
    assert len(digests) == len(corpus)


def test_hash_password_is_fixed_length_printable():
    for password in ["x", "a much longer password with spaces", "ñandú"]:
        digest = hash_password(password)
        assert len(digest) == 44
        assert digest.isprintable()
        assert password not in digest


def test_hash_password_known_value():
    # base64(sha256(b"admin"))
    assert hash_password("admin") == "jGl25bVBBBW96Qi9Te4V37Fnqchz/Eu4qB9vKrRIqRg="


def test_validate_bootstrap_admin(credentials):
    user = credentials.validate_user("admin", "admin")
    assert user is not None
    assert user.is_admin is True


def test_validate_user_is_case_insensitive_on_name(credentials):
    credentials.register_user("Alice", "wonderland")
    assert credentials.validate_user("ALICE", "wonderland").user_name == "Alice"


def test_unknown_user_and_wrong_password_look_the_same(credentials):
    credentials.register_user("bob", "builder")

    unknown = credentials.validate_user("nobody", "builder")
    wrong_password = credentials.validate_user("bob", "not-the-password")

    assert unknown is None
    assert wrong_password is None
    assert unknown == wrong_password


def test_register_creates_non_admin_with_hashed_password(credentials, store):
    user = credentials.register_user("carol", "secret")

    stored = store.get_user_by_name("carol")
    assert stored.id == user.id == 2
    assert stored.is_admin is False
    assert stored.password_hash == hash_password("secret")


def test_register_duplicate_name_fails_and_keeps_original(credentials, store):
    credentials.register_user("dave", "first")

    with pytest.raises(DuplicateUserError):
        credentials.register_user("DAVE", "second")

    assert credentials.validate_user("dave", "first") is not None
    assert credentials.validate_user("dave", "second") is None
    assert len(store.load_users()) == 2


def test_register_admin_name_collides_with_bootstrap_admin(credentials):
    with pytest.raises(DuplicateUserError):
        credentials.register_user("ADMIN", "whatever")
