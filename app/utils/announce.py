from __future__ import annotations

from app.domain.entities import DRAW, FinishReason


def format_time(seconds: float | None) -> str:
    if seconds is None:
        return "--:--"
    total = max(0, int(seconds))
    return f"{total // 60:02d}:{total % 60:02d}"


def display(state: dict, uid: str | None, viewer: str | None = None) -> str:
    if uid is None:
        return "-"
    if viewer is not None and uid == viewer:
        return "You"
    meta = (state.get("player_meta") or {}).get(uid) or {}
    return meta.get("name") or str(uid)[-4:]


def result_line(state: dict, viewer: str | None = None) -> str:
    winner = state.get("winner")
    if winner is None:
        return ""
    if winner == DRAW:
        return "All numbers have been called. It's a draw!"

    name = display(state, winner, viewer)
    verb = "win" if name == "You" else "wins"
    if state.get("finish_reason") == FinishReason.time_forfeit.value:
        return f"{name} {verb} on time!"
    return f"BINGO! {name} {verb}!"


def turn_line(state: dict, viewer: str | None = None) -> str:
    uid = state.get("turn")
    if uid is None:
        return ""
    if viewer is not None and uid == viewer:
        return "Your turn: call a number."
    return f"Waiting for {display(state, uid)} to call a number."
