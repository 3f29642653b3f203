"""Session modes and the read filters they imply."""

from __future__ import annotations

import os
from enum import Enum

ENV_SESSION_MODE = "AZ_SESSION_MODE"


class SessionParseError(ValueError):
    """Raised when a session mode string is not recognised."""

    def __init__(self, mode: str) -> None:
        super().__init__(
            f"mode session inconnu: '{mode}' (attendu: private | connected)"
        )
        self.mode = mode


class ReadFilter(Enum):
    """Which rows a store read returns, by sensitivity."""

    ALL = "all"
    EXCLUDE_SENSITIVE = "exclude_sensitive"


_ALIASES = {
    "private": "private",
    "priv": "private",
    "p": "private",
    "connected": "connected",
    "conn": "connected",
    "c": "connected",
}


class SessionMode(Enum):
    """How a session relates to the outside world.

    ``PRIVATE`` sessions keep everything local, so a local model may see
    sensitive entries. ``CONNECTED`` sessions may reach external tools, so
    sensitive entries are filtered out in the database before any model sees
    them.
    """

    PRIVATE = "private"
    CONNECTED = "connected"

    def read_filter(self) -> ReadFilter:
        """Return the read filter that this mode requires."""
        if self is SessionMode.PRIVATE:
            return ReadFilter.ALL
        return ReadFilter.EXCLUDE_SENSITIVE

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> SessionMode:
        """Parse a mode name or one of its short aliases, case-insensitively."""
        normalised = text.strip().lower()
        try:
            return cls(_ALIASES[normalised])
        except KeyError:
            raise SessionParseError(normalised) from None

    @classmethod
    def resolve(cls, cli_arg: str | None = None) -> SessionMode:
        """Pick the mode from the command line, then the environment, then the default."""
        if cli_arg is not None:
            return cls.parse(cli_arg)
        from_env = os.environ.get(ENV_SESSION_MODE)
        if from_env is not None:
            return cls.parse(from_env)
        return DEFAULT_MODE


DEFAULT_MODE = SessionMode.PRIVATE