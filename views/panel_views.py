from __future__ import annotations

from typing import Any, TYPE_CHECKING

import discord

from discord_utils.safety import safe_send_initial
from services.panel_service import PanelButton, panel_buttons

if TYPE_CHECKING:
    from bot.runtime import WorkshopBot


def image_choice_custom_id(topic: str, choice: str) -> str:
    return f"flow:{topic}:{choice}"


class PanelActionButton(discord.ui.Button):
    def __init__(self, bot: "WorkshopBot", button: PanelButton):
        super().__init__(
            style=getattr(discord.ButtonStyle, button.style, discord.ButtonStyle.primary),
            label=button.label,
            emoji=button.emoji,
            custom_id=button.custom_id,
        )
        self.bot = bot

    async def callback(self, interaction):
        await self.bot.handle_panel_button(interaction, str(self.custom_id))


class PanelView(discord.ui.View):
    """Persistent buttons below a panel message; survives restarts via add_view."""

    def __init__(self, bot: "WorkshopBot", topic: str):
        super().__init__(timeout=None)
        self.bot = bot
        self.topic = topic
        for button in panel_buttons(topic):
            self.add_item(PanelActionButton(bot, button))

    async def on_error(self, interaction, error: Exception, item: Any) -> None:
        await self.bot.report_interaction_error(interaction, error, source=f"panel:{self.topic}")


class ImageChoiceButton(discord.ui.Button):
    def __init__(self, bot: "WorkshopBot", *, topic: str, attach: bool):
        super().__init__(
            style=discord.ButtonStyle.primary if attach else discord.ButtonStyle.secondary,
            label="Bild anhaengen" if attach else "Ohne Bild fortfahren",
            emoji="📷" if attach else "➡️",
            custom_id=image_choice_custom_id(topic, "attach" if attach else "skip"),
        )
        self.bot = bot
        self.topic = topic
        self.attach = attach

    async def callback(self, interaction):
        await self.bot.choose_image_option(interaction, self.topic, attach=self.attach)


class ImageChoiceView(discord.ui.View):
    def __init__(self, bot: "WorkshopBot", *, topic: str, user_id: int, timeout: float):
        super().__init__(timeout=timeout)
        self.bot = bot
        self.topic = topic
        self.user_id = int(user_id)
        self.add_item(ImageChoiceButton(bot, topic=topic, attach=True))
        self.add_item(ImageChoiceButton(bot, topic=topic, attach=False))

    async def interaction_check(self, interaction) -> bool:
        if int(getattr(interaction.user, "id", 0) or 0) == self.user_id:
            return True
        await safe_send_initial(interaction, "Diese Auswahl gehoert nicht zu deiner Dokumentation.", ephemeral=True)
        return False

    async def on_error(self, interaction, error: Exception, item: Any) -> None:
        await self.bot.report_interaction_error(interaction, error, source=f"flow:{self.topic}")
