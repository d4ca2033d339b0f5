from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import bcrypt


@dataclass(frozen=True)
class Account:
    id: str
    username: str
    role: str
    password_hash: str

    def session_payload(self) -> dict[str, Any]:
        """What gets stored in the session cookie; never the hash."""
        return {"id": self.id, "username": self.username, "role": self.role}


_accounts: dict[str, Account] = {}


def _hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt()).decode()


def _verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def _register(user_id: str, username: str, password: str, role: str) -> None:
    _accounts[username] = Account(
        id=user_id, username=username, role=role, password_hash=_hash_password(password),
    )


def _seed_accounts() -> None:
    # Ids match ``reviews.user_id`` in the bundled local data.
    _register("7d1c2b40-0000-4000-8000-000000000001", "user", "user123", "user")
    _register("7d1c2b40-0000-4000-8000-000000000002", "admin", "admin123", "admin")


def authenticate(username: str, password: str) -> dict[str, Any] | None:
    """Verify credentials. Returns ``{id, username, role}`` or ``None``."""
    account = _accounts.get(username)
    if account and _verify_password(password, account.password_hash):
        return account.session_payload()
    return None


_seed_accounts()
