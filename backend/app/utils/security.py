import hmac

import bcrypt


def hash_password(password: str, rounds: int = 12) -> str:
    """Salted bcrypt hash, the format expected in ADMIN_PASSWORD_HASH."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def verify_admin_credentials(
    email: str,
    password: str,
    *,
    expected_email: str,
    expected_password_hash: str,
) -> bool:
    email_ok = hmac.compare_digest(
        email.strip().lower().encode("utf-8"),
        expected_email.strip().lower().encode("utf-8"),
    )
    # bcrypt runs even when the email does not match
    password_ok = verify_password(password, expected_password_hash)
    return email_ok and password_ok
