"""Authenticated session handed to the state store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import NotAuthenticated

if TYPE_CHECKING:
    from .config import TallybookConfig


@dataclass
class Session:
    """Holds the signed-in user's identity."""

    user_id: str
    access_token: str = ""


def resolve_session(config: TallybookConfig, user_id: str | None = None) -> Session:
    """Build a session from an explicit user id or the configured one.

    Raises:
        NotAuthenticated: If no user id is available.
    """
    resolved = user_id or config.user.user_id
    if not resolved:
        raise NotAuthenticated(
            "No user id. Pass --user, set user.user_id in the config file "
            "or the TALLYBOOK_USER_ID environment variable."
        )
    return Session(user_id=resolved, access_token=config.user.access_token)
