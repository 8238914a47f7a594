from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable

from db.repository import AbsenceRecord, Repository
from discord_utils.safety import safe_delete_message, safe_fetch_message
from services.absence_service import STATUS_AWAY, absence_status
from services.topics import ABSENCE_TOPIC, DOCUMENTATION_TOPICS, STANCE_TOPIC, TUNINGCHIP_TOPIC, XENON_TOPIC
from utils.text import format_date_de, truncate
from utils.time_utils import berlin_today


log = logging.getLogger("werkstatt.panels")

PANEL_COLOR = 0x2B2D31
MAX_ABSENCE_FIELDS = 25
PANEL_REASON_LIMIT = 150
EMBED_FIELD_NAME_LIMIT = 256
EMBED_TOTAL_LIMIT = 6000

ABSENCE_BUTTON_ID = "abmelden_button"
ABSENCE_END_BUTTON_ID = "abmeldung_beenden_button"

_DOCUMENTATION_PANEL_TEXT = {
    TUNINGCHIP_TOPIC: (
        "Tuningchip Dokumentation",
        "Klicke auf den Button, um einen verbauten Tuningchip zu dokumentieren.\n\n"
        "Benoetigt werden Kunde, Kennzeichen und die durchgefuehrten Aenderungen. "
        "Im Anschluss kannst du innerhalb von 60 Sekunden ein Bild hochladen.",
    ),
    STANCE_TOPIC: (
        "Stance-Tuning Dokumentation",
        "Klicke auf den Button, um ein Stance-Tuning zu dokumentieren.\n\n"
        "Benoetigt werden Kunde und Kennzeichen. "
        "Im Anschluss kannst du innerhalb von 60 Sekunden ein Bild hochladen.",
    ),
    XENON_TOPIC: (
        "Xenon-Scheinwerfer Dokumentation",
        "Klicke auf den Button, um verbaute Xenon-Scheinwerfer zu dokumentieren.\n\n"
        "Benoetigt werden Kunde, Kennzeichen und die Xenon-Farbe. "
        "Im Anschluss kannst du innerhalb von 60 Sekunden ein Bild hochladen.",
    ),
}


@dataclass(slots=True)
class PanelField:
    name: str
    value: str
    inline: bool = False


@dataclass(slots=True)
class PanelButton:
    custom_id: str
    label: str
    style: str = "primary"
    emoji: str | None = None


@dataclass(slots=True)
class PanelRender:
    topic: str
    title: str
    description: str
    fields: list[PanelField] = field(default_factory=list)
    footer: str | None = None
    buttons: list[PanelButton] = field(default_factory=list)
    color: int = PANEL_COLOR


MessageBuilder = Callable[[PanelRender], dict[str, Any]]


def documentation_start_button_id(topic: str) -> str:
    return f"doku:{topic}:start"


def panel_buttons(topic: str) -> list[PanelButton]:
    if topic == ABSENCE_TOPIC:
        return [
            PanelButton(custom_id=ABSENCE_BUTTON_ID, label="Abmelden", style="primary", emoji="📋"),
            PanelButton(custom_id=ABSENCE_END_BUTTON_ID, label="Abmeldung beenden", style="secondary", emoji="✅"),
        ]
    if topic in DOCUMENTATION_TOPICS:
        return [
            PanelButton(
                custom_id=documentation_start_button_id(topic),
                label="Dokumentation erstellen",
                style="success",
                emoji="📝",
            )
        ]
    return []


def _absence_field(record: AbsenceRecord, today: date) -> PanelField:
    status = "🔴 Abwesend" if absence_status(record, today) == STATUS_AWAY else "🟡 Geplant"
    return PanelField(
        name=truncate(f"{status} | {record.display_name}", limit=EMBED_FIELD_NAME_LIMIT),
        value=(
            f"📅 **{format_date_de(record.start_date)}** bis **{format_date_de(record.end_date)}**\n"
            f"📝 {truncate(record.reason, limit=PANEL_REASON_LIMIT)}"
        ),
    )


def render_absence_panel(absences: list[AbsenceRecord], today: date) -> PanelRender:
    title = "Abmeldungssystem"
    description = "Klicke auf den Button um dich abzumelden.\n\n**Aktuelle Abmeldungen:**"
    footer = f"{len(absences)} aktive Abmeldung(en)"

    fields: list[PanelField] = []
    if not absences:
        fields.append(PanelField(name="​", value="*Keine aktiven Abmeldungen*"))

    # Discord rejects embeds above EMBED_TOTAL_LIMIT characters in total.
    used = len(title) + len(description) + len(footer)
    for record in absences[:MAX_ABSENCE_FIELDS]:
        item = _absence_field(record, today)
        size = len(item.name) + len(item.value)
        if used + size > EMBED_TOTAL_LIMIT:
            break
        used += size
        fields.append(item)

    return PanelRender(
        topic=ABSENCE_TOPIC,
        title=title,
        description=description,
        fields=fields,
        footer=footer,
        buttons=panel_buttons(ABSENCE_TOPIC),
    )


def render_documentation_panel(topic: str) -> PanelRender:
    title, description = _DOCUMENTATION_PANEL_TEXT[topic]
    return PanelRender(
        topic=topic,
        title=title,
        description=description,
        buttons=panel_buttons(topic),
    )


class PanelSynchronizer:
    """Keeps exactly one live panel message per (channel, topic).

    Every publish deletes the previous panel message and posts a fresh one,
    which moves the panel back to the bottom of the channel. Editing in place
    would leave it buried under newer messages.
    """

    def __init__(
        self,
        repo: Repository,
        *,
        message_builder: MessageBuilder,
        today_fn: Callable[[], date] = berlin_today,
    ) -> None:
        self.repo = repo
        self.message_builder = message_builder
        self.today_fn = today_fn

    async def render(self, topic: str) -> PanelRender:
        if topic == ABSENCE_TOPIC:
            absences = await self.repo.list_active_absences()
            return render_absence_panel(absences, self.today_fn())
        if topic in DOCUMENTATION_TOPICS:
            return render_documentation_panel(topic)
        raise ValueError(f"Unknown panel topic: {topic}")

    async def publish_panel(self, channel: Any, topic: str) -> int | None:
        channel_id = getattr(channel, "id", None)
        try:
            render = await self.render(topic)
            await self._remove_previous_panel(channel, topic)
            message = await channel.send(**self.message_builder(render))
            record = await self.repo.insert_panel_message(
                channel_id=int(channel.id),
                message_id=int(message.id),
                topic=topic,
            )
        except Exception:
            log.exception("Panel publish failed topic=%s channel_id=%s", topic, channel_id)
            return None

        log.debug("Panel published topic=%s channel_id=%s message_id=%s", topic, channel_id, record.message_id)
        return record.message_id

    async def _remove_previous_panel(self, channel: Any, topic: str) -> None:
        existing = await self.repo.get_panel_message(int(channel.id), topic)
        if existing is None:
            return

        old_message = await safe_fetch_message(channel, existing.message_id)
        if old_message is not None:
            await safe_delete_message(old_message)
        await self.repo.delete_panel_message(existing.id)
