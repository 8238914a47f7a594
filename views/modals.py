from __future__ import annotations

from typing import Any, TYPE_CHECKING

import discord

from services.absence_service import REASON_MAX_LENGTH
from services.topics import TUNINGCHIP_TOPIC, XENON_TOPIC
from services.tuning_service import VARIANT_TITLES
from utils.text import PLATE_MAX_LENGTH

if TYPE_CHECKING:
    from bot.runtime import WorkshopBot


class AbsenceModal(discord.ui.Modal):
    grund = discord.ui.TextInput(
        label="Grund der Abmeldung",
        style=discord.TextStyle.paragraph,
        placeholder="z.B. Urlaub, Krankheit, Private Gruende...",
        required=True,
        max_length=REASON_MAX_LENGTH,
    )
    von = discord.ui.TextInput(
        label="Von (Datum)",
        placeholder="TT.MM.JJJJ (z.B. 25.12.2024)",
        required=True,
        max_length=10,
    )
    bis = discord.ui.TextInput(
        label="Bis (Datum)",
        placeholder="TT.MM.JJJJ (z.B. 31.12.2024)",
        required=True,
        max_length=10,
    )

    def __init__(self, bot: "WorkshopBot"):
        super().__init__(title="Abmeldung erstellen", custom_id="abmeldung_modal")
        self.bot = bot

    async def on_submit(self, interaction):
        await self.bot.submit_absence(
            interaction,
            reason=str(self.grund.value),
            start_raw=str(self.von.value),
            end_raw=str(self.bis.value),
        )

    async def on_error(self, interaction, error: Exception) -> None:
        await self.bot.report_interaction_error(interaction, error, source="abmeldung_modal")


class DocumentationModal(discord.ui.Modal):
    def __init__(self, bot: "WorkshopBot", topic: str):
        super().__init__(title=VARIANT_TITLES[topic], custom_id=f"doku:{topic}:modal")
        self.bot = bot
        self.topic = topic

        self.kunde = discord.ui.TextInput(label="Name des Kunden", required=True, max_length=100)
        self.kennzeichen = discord.ui.TextInput(
            label="Kennzeichen",
            placeholder="z.B. ABC123",
            required=True,
            max_length=PLATE_MAX_LENGTH,
        )
        self.add_item(self.kunde)
        self.add_item(self.kennzeichen)

        self.beschreibung: discord.ui.TextInput | None = None
        self.farbe: discord.ui.TextInput | None = None
        if topic == TUNINGCHIP_TOPIC:
            self.beschreibung = discord.ui.TextInput(
                label="Durchgefuehrte Aenderungen",
                style=discord.TextStyle.paragraph,
                required=True,
                max_length=1000,
            )
            self.add_item(self.beschreibung)
        if topic == XENON_TOPIC:
            self.farbe = discord.ui.TextInput(label="Xenon-Farbe", placeholder="z.B. Blau", required=True, max_length=50)
            self.add_item(self.farbe)

    @staticmethod
    def _value(field: Any) -> str | None:
        return str(field.value) if field is not None else None

    async def on_submit(self, interaction):
        await self.bot.submit_documentation(
            interaction,
            self.topic,
            customer_name=str(self.kunde.value),
            plate=str(self.kennzeichen.value),
            description=self._value(self.beschreibung),
            color=self._value(self.farbe),
        )

    async def on_error(self, interaction, error: Exception) -> None:
        await self.bot.report_interaction_error(interaction, error, source=f"doku:{self.topic}:modal")
