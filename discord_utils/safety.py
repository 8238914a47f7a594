from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any


log = logging.getLogger("werkstatt.discord")

_RESPONSE_ERRORS = {
    "InteractionResponded",
    "HTTPException",
    "NotFound",
    "Forbidden",
}


@dataclass(slots=True)
class InteractionAckState:
    interaction_id: int
    acknowledged: bool = False


class InteractionAcker:
    """Per-interaction ack guard to prevent double-respond races."""

    def __init__(self, *, max_tracked: int = 20_000) -> None:
        self._lock = asyncio.Lock()
        self._states: dict[int, InteractionAckState] = {}
        self._max_tracked = max_tracked

    async def mark_or_get(self, interaction_id: int) -> bool:
        async with self._lock:
            state = self._states.get(interaction_id)
            if state is None:
                if len(self._states) >= self._max_tracked:
                    self._states.clear()
                self._states[interaction_id] = InteractionAckState(interaction_id=interaction_id, acknowledged=True)
                return True
            if state.acknowledged:
                return False
            state.acknowledged = True
            return True


def _is_response_error(exc: Exception) -> bool:
    return exc.__class__.__name__ in _RESPONSE_ERRORS


def _log_safe_wrapper_error(action: str, exc: Exception) -> None:
    if _is_response_error(exc):
        return
    log.debug("Safe Discord wrapper '%s' failed: %s", action, exc, exc_info=True)


async def safe_defer(interaction: Any, *, ephemeral: bool = False) -> bool:
    response = getattr(interaction, "response", None)
    if response is None:
        return False
    is_done = getattr(response, "is_done", None)
    if callable(is_done) and is_done():
        return False

    try:
        await response.defer(ephemeral=ephemeral)
        return True
    except Exception as exc:
        _log_safe_wrapper_error("defer", exc)
        return False


async def safe_followup(interaction: Any, content: str, *, ephemeral: bool = False, **kwargs: Any) -> bool:
    followup = getattr(interaction, "followup", None)
    if followup is None:
        return False

    try:
        await followup.send(content, ephemeral=ephemeral, **kwargs)
        return True
    except Exception as exc:
        _log_safe_wrapper_error("followup.send", exc)
        return False


async def safe_send_initial(
    interaction: Any,
    content: str,
    *,
    ephemeral: bool = False,
    **kwargs: Any,
) -> bool:
    response = getattr(interaction, "response", None)
    if response is None:
        return False

    is_done = getattr(response, "is_done", None)
    if callable(is_done) and is_done():
        return await safe_followup(interaction, content, ephemeral=ephemeral, **kwargs)

    try:
        await response.send_message(content, ephemeral=ephemeral, **kwargs)
        return True
    except Exception as exc:
        _log_safe_wrapper_error("response.send_message", exc)
        if not _is_response_error(exc):
            return False
        return await safe_followup(interaction, content, ephemeral=ephemeral, **kwargs)


async def safe_send_modal(interaction: Any, modal: Any) -> bool:
    response = getattr(interaction, "response", None)
    if response is None:
        return False
    try:
        await response.send_modal(modal)
        return True
    except Exception as exc:
        _log_safe_wrapper_error("response.send_modal", exc)
        return False


async def safe_edit_interaction_message(interaction: Any, **kwargs: Any) -> bool:
    """Edit the message a component lives on, acknowledging the interaction."""
    response = getattr(interaction, "response", None)
    if response is None:
        return False
    is_done = getattr(response, "is_done", None)
    if callable(is_done) and is_done():
        return False
    try:
        await response.edit_message(**kwargs)
        return True
    except Exception as exc:
        _log_safe_wrapper_error("response.edit_message", exc)
        return False


async def safe_send_channel_message(channel: Any, **kwargs: Any) -> Any | None:
    send_fn = getattr(channel, "send", None)
    if send_fn is None:
        return None
    try:
        return await send_fn(**kwargs)
    except Exception as exc:
        _log_safe_wrapper_error("channel.send", exc)
        return None


async def safe_fetch_message(channel: Any, message_id: int) -> Any | None:
    fetch_fn = getattr(channel, "fetch_message", None)
    if fetch_fn is None:
        return None
    try:
        return await fetch_fn(int(message_id))
    except Exception as exc:
        _log_safe_wrapper_error("channel.fetch_message", exc)
        return None


async def safe_delete_message(message: Any) -> bool:
    delete_fn = getattr(message, "delete", None)
    if delete_fn is None:
        return False
    try:
        await delete_fn()
        return True
    except Exception as exc:
        _log_safe_wrapper_error("message.delete", exc)
        return False
