"""
User Directory

Flat PIN lookup for the people allowed to edit the grid. This is an
attribution aid (it fills `updated_by`), not an access control boundary.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple
import json

from timber_backend.contracts.errors import ValidationError
from timber_backend.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    """A user after PIN lookup; carries no PIN."""
    name: str
    title: str

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.title})"


@dataclass(frozen=True)
class UserRecord:
    name: str
    title: str
    pin: str

    def authenticated(self) -> AuthenticatedUser:
        return AuthenticatedUser(name=self.name, title=self.title)


DEFAULT_USERS: Tuple[UserRecord, ...] = (
    UserRecord(name="Jayward", title="CNC Operator", pin="1234"),
    UserRecord(name="Angel", title="CNC Operator", pin="5678"),
    UserRecord(name="Jehan", title="CNC Operator", pin="8765"),
    UserRecord(name="Lucio", title="CNC Operator", pin="4321"),
    UserRecord(name="Steve", title="Factory Manager", pin="0000"),
)


class UserDirectory:
    """
    Users keyed by PIN.

    PINs must be unique; a duplicate is a configuration error.
    """

    def __init__(self, users: Tuple[UserRecord, ...] = DEFAULT_USERS):
        self._by_pin: Dict[str, UserRecord] = {}
        for user in users:
            if user.pin in self._by_pin:
                raise ValidationError(f"Duplicate PIN for user {user.name}")
            self._by_pin[user.pin] = user

    @classmethod
    def load(cls, path: Optional[Path] = None) -> 'UserDirectory':
        """
        Load users from a JSON list of {name, title, pin}.

        Falls back to the built-in roster when `path` is None or missing.
        """
        if path is None or not Path(path).exists():
            return cls()
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValidationError("User directory must be a JSON list")
        users = []
        for entry in data:
            if not isinstance(entry, dict) or not all(
                isinstance(entry.get(key), str) for key in ("name", "title", "pin")
            ):
                raise ValidationError("Each user needs a name, title and pin")
            users.append(UserRecord(name=entry["name"], title=entry["title"], pin=entry["pin"]))
        logger.debug("user directory loaded", extra={"count": len(users), "source": str(path)})
        return cls(tuple(users))

    def authenticate(self, pin: str) -> Optional[AuthenticatedUser]:
        user = self._by_pin.get(pin)
        return user.authenticated() if user else None

    def __iter__(self) -> Iterator[AuthenticatedUser]:
        for user in self._by_pin.values():
            yield user.authenticated()

    def __len__(self) -> int:
        return len(self._by_pin)
