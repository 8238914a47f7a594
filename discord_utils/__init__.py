from discord_utils.safety import (
    InteractionAcker,
    safe_defer,
    safe_delete_message,
    safe_edit_interaction_message,
    safe_fetch_message,
    safe_followup,
    safe_send_channel_message,
    safe_send_initial,
    safe_send_modal,
)
from discord_utils.task_registry import SingletonTaskRegistry

__all__ = [
    "InteractionAcker",
    "safe_defer",
    "safe_delete_message",
    "safe_edit_interaction_message",
    "safe_fetch_message",
    "safe_followup",
    "safe_send_channel_message",
    "safe_send_initial",
    "safe_send_modal",
    "SingletonTaskRegistry",
]
