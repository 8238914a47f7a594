from __future__ import annotations

from pathlib import Path
from typing import Any

import discord

from db.repository import AbsenceRecord, EigentuningRecord, SanctionRecord, TuningDocumentRecord
from services.panel_service import PanelRender
from services.tuning_service import VARIANT_TITLES
from services.topics import TUNINGCHIP_TOPIC, XENON_TOPIC
from services.userinfo_service import UserSummary
from utils.text import format_date_de, format_money, truncate
from utils.time_utils import as_utc


COLOR_SUCCESS = 0x00FF00
COLOR_WARNING = 0xFFAA00
COLOR_ERROR = 0xFF0000
COLOR_INFO = 0x0099FF

LOGO_FILENAME = "logo_firma.png"
LOGO_ATTACHMENT_URL = f"attachment://{LOGO_FILENAME}"
BLANK = "​"


def logo_file(logo_path: str | None) -> discord.File | None:
    if not logo_path or not Path(logo_path).is_file():
        return None
    return discord.File(logo_path, filename=LOGO_FILENAME)


def _with_logo(embed: discord.Embed, logo_path: str | None) -> dict[str, Any]:
    file = logo_file(logo_path)
    if file is None:
        return {"embed": embed}
    embed.set_thumbnail(url=LOGO_ATTACHMENT_URL)
    return {"embed": embed, "file": file}


def panel_embed(render: PanelRender) -> discord.Embed:
    embed = discord.Embed(title=render.title, description=render.description, color=render.color)
    for item in render.fields:
        embed.add_field(name=item.name, value=item.value, inline=item.inline)
    if render.footer:
        embed.set_footer(text=render.footer)
    return embed


def panel_message_payload(render: PanelRender, *, logo_path: str | None) -> dict[str, Any]:
    return _with_logo(panel_embed(render), logo_path)


def documentation_embed(record: TuningDocumentRecord) -> discord.Embed:
    embed = discord.Embed(
        title=VARIANT_TITLES.get(record.variant, "Dokumentation"),
        color=COLOR_SUCCESS,
        timestamp=as_utc(record.created_at) if record.created_at else None,
    )
    embed.add_field(name="Kunde", value=record.customer_name, inline=True)
    embed.add_field(name="Kennzeichen", value=record.plate, inline=True)
    if record.variant == XENON_TOPIC:
        embed.add_field(name="Xenon-Farbe", value=record.color or "-", inline=True)
    embed.add_field(name="Bearbeitet von", value=f"<@{record.author_id}>", inline=True)
    if record.variant == TUNINGCHIP_TOPIC:
        embed.add_field(name="Durchgefuehrte Aenderungen", value=truncate(record.description or "-"), inline=False)
    if record.image_url:
        embed.set_image(url=record.image_url)
    embed.set_footer(text=f"Dokumentations-ID: #{record.id}")
    return embed


def documentation_payload(record: TuningDocumentRecord, *, logo_path: str | None) -> dict[str, Any]:
    return _with_logo(documentation_embed(record), logo_path)


def eigentuning_payload(record: EigentuningRecord, *, logo_path: str | None) -> dict[str, Any]:
    embed = discord.Embed(
        title="Eigentuning Dokumentation",
        color=COLOR_SUCCESS,
        timestamp=as_utc(record.created_at) if record.created_at else None,
    )
    embed.add_field(name="Eigentuning von", value=record.author_name, inline=True)
    embed.add_field(name="Rechnungsausstellung von", value=record.invoice_issuer, inline=True)
    embed.add_field(name=BLANK, value=BLANK, inline=True)
    embed.add_field(name="Einkaufspreis", value=format_money(record.purchase_price), inline=True)
    embed.add_field(name="Hoehe der ausgestellten Rechnung", value=format_money(record.invoice_amount), inline=True)
    embed.set_footer(text=f"Dokumentations-ID: #{record.id}")
    return _with_logo(embed, logo_path)


def sanction_embed(record: SanctionRecord) -> discord.Embed:
    embed = discord.Embed(
        title="Sanktion ausgestellt",
        color=COLOR_ERROR,
        timestamp=as_utc(record.created_at) if record.created_at else None,
    )
    embed.add_field(name="Benutzer", value=f"<@{record.user_id}>", inline=True)
    embed.add_field(name="Sanktionstyp", value=record.kind, inline=True)
    embed.add_field(name="Geldstrafe", value=format_money(record.fine_amount), inline=True)
    embed.add_field(name="Grund", value=truncate(record.reason), inline=False)
    embed.add_field(name="Ausgestellt von", value=f"<@{record.issuer_id}>", inline=True)
    embed.add_field(name="Sanktions-ID", value=f"#{record.id}", inline=True)
    if record.expires_at is not None:
        embed.add_field(name="Suspendierung bis", value=format_date_de(record.expires_at), inline=True)
    return embed


def sanction_revoked_embed(record: SanctionRecord, *, actor_name: str) -> discord.Embed:
    embed = discord.Embed(title="Sanktion aufgehoben", color=COLOR_SUCCESS, timestamp=discord.utils.utcnow())
    embed.add_field(name="Sanktions-ID", value=f"#{record.id}", inline=True)
    embed.add_field(name="Benutzer", value=record.display_name, inline=True)
    embed.add_field(name="Typ", value=record.kind, inline=True)
    embed.add_field(name="Aufgehoben von", value=actor_name, inline=False)
    return embed


def absence_list_embed(records: list[AbsenceRecord]) -> discord.Embed:
    embed = discord.Embed(title="Aktive Abmeldungen", color=COLOR_INFO, timestamp=discord.utils.utcnow())
    for record in records:
        embed.add_field(
            name=f"#{record.id} - {record.display_name}",
            value=truncate(
                f"**Von:** {format_date_de(record.start_date)} | **Bis:** {format_date_de(record.end_date)}\n"
                f"**Grund:** {record.reason}"
            ),
            inline=False,
        )
    return embed


def sanction_list_embed(records: list[SanctionRecord], *, title: str) -> discord.Embed:
    embed = discord.Embed(title=title, color=COLOR_WARNING, timestamp=discord.utils.utcnow())
    for record in records:
        status = "Aktiv" if record.active else "Aufgehoben"
        embed.add_field(
            name=f"#{record.id} - {record.kind} [{status}]",
            value=truncate(
                f"**Benutzer:** {record.display_name}\n"
                f"**Grund:** {record.reason}\n"
                f"**Geldstrafe:** {format_money(record.fine_amount)}\n"
                f"**Von:** {record.issuer_name}\n"
                f"**Ablauf:** {format_date_de(record.expires_at)}"
            ),
            inline=False,
        )
    return embed


def userinfo_embed(user: Any, summary: UserSummary) -> discord.Embed:
    embed = discord.Embed(title=f"Benutzerinfo: {user}", color=COLOR_INFO, timestamp=discord.utils.utcnow())
    avatar = getattr(user, "display_avatar", None)
    if avatar is not None:
        embed.set_thumbnail(url=avatar.url)
    created_at = getattr(user, "created_at", None)
    embed.add_field(name="User ID", value=str(summary.user_id), inline=True)
    embed.add_field(name="Account erstellt", value=format_date_de(created_at), inline=True)
    embed.add_field(name=BLANK, value=BLANK, inline=True)
    embed.add_field(name="Aktive Abmeldungen", value=str(summary.active_absences), inline=True)
    embed.add_field(name="Aktive Sanktionen", value=str(summary.active_sanctions), inline=True)
    embed.add_field(name="Sanktionen gesamt", value=str(summary.total_sanctions), inline=True)
    return embed
