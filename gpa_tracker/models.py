from dataclasses import dataclass, asdict
from datetime import datetime, timezone, tzinfo
from typing import Optional

from gpa_tracker.errors import CorruptState

ADMIN_USERNAME = "admin"
ROLE_ADMIN = "admin"
ROLE_STUDENT = "student"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Account:
    username: str
    password: str
    role: str = ROLE_STUDENT
    approved: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Account":
        if not isinstance(data, dict) or "username" not in data:
            raise CorruptState(f"not an account: {data!r}")
        return cls(
            username=data["username"],
            password=data.get("password", ""),
            role=data.get("role", ROLE_STUDENT),
            approved=bool(data.get("approved", False)),
        )


@dataclass
class LoginLogEntry:
    username: str
    timestamp: str

    @classmethod
    def now(cls, username: str, when: Optional[datetime] = None) -> "LoginLogEntry":
        if when is None:
            return cls(username=username, timestamp=now_iso())
        stamp = when.astimezone(timezone.utc).isoformat(timespec="milliseconds")
        return cls(username=username, timestamp=stamp.replace("+00:00", "Z"))

    def display_time(self, tz: Optional[tzinfo] = None) -> str:
        """Timestamp as a local date and time; tz defaults to the machine's zone."""
        try:
            when = datetime.fromisoformat(self.timestamp.replace("Z", "+00:00"))
        except (AttributeError, ValueError):
            return str(self.timestamp)
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return when.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S")

    def to_dict(self) -> dict:
        # stored as "time", the key the login log has always used
        return {"username": self.username, "time": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> "LoginLogEntry":
        if not isinstance(data, dict) or "username" not in data:
            raise CorruptState(f"not a login log entry: {data!r}")
        return cls(username=data["username"], timestamp=data.get("time", ""))
