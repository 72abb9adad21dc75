"""Closed enumerations shared by models, services and schemas."""

from enum import StrEnum


class Role(StrEnum):
    """Account role; also tags who authored a message."""

    ADMIN = "Admin"
    USER = "User"
    SYSTEM = "System"

    @classmethod
    def parse(cls, value: object) -> "Role | None":
        """Return the matching role or None for anything unrecognized."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return None


class MessageType(StrEnum):
    """Kind of content carried by a chat message."""

    TEXT = "Text"
    IMAGE = "Image"
    FILE = "File"
    VOICE = "Voice"
    SYSTEM = "System"

    @classmethod
    def parse(cls, value: str | None) -> "MessageType":
        """Case-insensitive lookup; unknown values fall back to Text."""
        if value:
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return cls.TEXT


class PresenceStatus(StrEnum):
    """Derived presence classification."""

    ONLINE = "Online"
    IDLE = "Idle"
    OFFLINE = "Offline"
