from __future__ import annotations

import secrets
import string

_ALPHABET = string.ascii_lowercase + string.digits


def _token(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def new_player_id() -> str:
    """Anonymous session id, stable for as long as the client keeps it."""
    return f"player_{_token(7)}"


def new_game_code() -> str:
    return _token(7)
