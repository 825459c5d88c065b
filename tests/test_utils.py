# tests/test_utils.py
import re

from library_service.utils import generate_password, get_password_hash, verify_password, error_message


def test_generated_password_is_16_hex_chars():
    passwords = {generate_password() for _ in range(10)}

    assert len(passwords) == 10
    assert all(re.fullmatch(r"[0-9a-f]{16}", p) for p in passwords)


def test_hash_uses_bcrypt_cost_10():
    hashed = get_password_hash("0123456789abcdef")

    assert hashed.startswith("$2b$10$")
    assert verify_password("0123456789abcdef", hashed)
    assert not verify_password("0123456789abcdeF", hashed)


def test_error_message_prefers_driver_message():
    class FakeDBError(Exception):
        orig = ValueError("UNIQUE constraint failed: users.email")

    assert error_message(FakeDBError("INSERT INTO users ...")) == "UNIQUE constraint failed: users.email"
    assert error_message(OSError("disk full")) == "disk full"
