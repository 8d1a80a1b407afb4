from __future__ import annotations

from werkzeug.security import check_password_hash, generate_password_hash

from identity_service.services._shared.ports import PasswordHasher


class WerkzeugPasswordHasher(PasswordHasher):
    """
    Salted adaptive hashing via :mod:`werkzeug.security`.

    :param method: Werkzeug method string. ``None`` keeps werkzeug's current
        default (scrypt); tests may pass a cheaper ``"pbkdf2:sha256:1000"``.
    """

    def __init__(self, method: str | None = None) -> None:
        self.method = method

    def hash(self, password: str) -> str:
        if self.method is None:
            return generate_password_hash(password)
        return generate_password_hash(password, method=self.method)

    def verify(self, password: str, password_hash: str) -> bool:
        if not password_hash:
            return False
        try:
            return bool(check_password_hash(password_hash, password))
        except ValueError:
            # Unknown method or corrupted digest
            return False
