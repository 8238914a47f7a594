from __future__ import annotations

import logging
import os
from typing import Any, Optional

import discord
from discord import app_commands

from bot.config import BotConfig, load_config
from bot.context import BotContext, member_display_name
from bot.logging import setup_logging
from db.repository import Repository, TuningDocumentRecord
from db.schema_guard import ensure_required_schema, validate_required_tables
from db.session import SessionManager
from discord_utils.safety import (
    InteractionAcker,
    safe_defer,
    safe_edit_interaction_message,
    safe_followup,
    safe_send_channel_message,
    safe_send_initial,
    safe_send_modal,
)
from services.absence_service import create_absence, deactivate_absence_by_id
from services.panel_service import ABSENCE_BUTTON_ID, ABSENCE_END_BUTTON_ID, PanelRender
from services.sanction_service import (
    SANCTION_KIND_CHOICES,
    issue_sanction,
    list_sanctions_for_display,
    revoke_sanction,
)
from services.startup_service import SingletonGate, command_registry_health
from services.submission_flow import SubmissionFlow
from services.topics import (
    ABSENCE_TOPIC,
    DOCUMENTATION_TOPICS,
    PANEL_TOPICS,
    STANCE_TOPIC,
    TUNINGCHIP_TOPIC,
    XENON_TOPIC,
    is_documentation_topic,
)
from services.tuning_service import build_documentation_form, create_documentation, record_eigentuning
from services.userinfo_service import build_user_summary
from utils.text import format_date_de
from views.embeds import (
    absence_list_embed,
    documentation_payload,
    eigentuning_payload,
    panel_message_payload,
    sanction_embed,
    sanction_list_embed,
    sanction_revoked_embed,
    userinfo_embed,
)
from views.modals import AbsenceModal, DocumentationModal
from views.panel_views import ImageChoiceView, PanelView


log = logging.getLogger("werkstatt.runtime")

GENERIC_ERROR_MESSAGE = "Ein unerwarteter Fehler ist aufgetreten."
NO_PERMISSION_MESSAGE = "Du hast keine Berechtigung fuer diesen Befehl."
ABSENCE_LIST_LIMIT = 10
SANCTION_LIST_LIMIT = 15


def _has_guild_permission(interaction: Any, flag: str) -> bool:
    perms = getattr(getattr(interaction, "user", None), "guild_permissions", None)
    if perms is None:
        return False
    return bool(getattr(perms, "administrator", False) or getattr(perms, flag, False))


def _permission_check(flag: str):
    async def predicate(interaction) -> bool:
        return _has_guild_permission(interaction, flag)

    return app_commands.check(predicate)


def _is_image_attachment(attachment: Any) -> bool:
    content_type = str(getattr(attachment, "content_type", "") or "")
    if content_type:
        return content_type.startswith("image/")
    filename = str(getattr(attachment, "filename", "") or "").lower()
    return filename.endswith((".png", ".jpg", ".jpeg", ".gif", ".webp"))


class WorkshopBot(discord.Client):
    def __init__(self, config: BotConfig) -> None:
        intents = discord.Intents.default()
        intents.message_content = config.enable_message_content_intent
        super().__init__(intents=intents)

        self.config = config
        self.session_manager = SessionManager(config)
        self.repo = Repository(self.session_manager)
        self.tree = app_commands.CommandTree(self)
        self.singleton_gate = SingletonGate(config.lock_file)
        self.acker = InteractionAcker()
        self.context = BotContext(
            config=config,
            repo=self.repo,
            message_builder=self._build_panel_message,
            presenter=self,
            resolve_channel=self._get_text_channel,
        )

        self._schema_ready = False
        self._commands_registered = False
        self._views_restored = False
        self._commands_synced = False
        self._startup_panels_done = False

    async def setup_hook(self) -> None:
        if not await self.singleton_gate.try_acquire():
            log.error("Another instance holds the lock file %s. Exiting.", self.config.lock_file)
            raise SystemExit(1)

        if not self._schema_ready:
            await self._bootstrap_database()
            self._schema_ready = True
        if not self._commands_registered:
            self._register_commands()
            self._commands_registered = True
            _, missing, unexpected = command_registry_health(cmd.name for cmd in self.tree.get_commands())
            if missing or unexpected:
                log.warning("Command registry mismatch missing=%s unexpected=%s", missing, unexpected)
        if not self._views_restored:
            for topic in PANEL_TOPICS:
                self.add_view(PanelView(self, topic))
            self._views_restored = True

    async def _bootstrap_database(self) -> None:
        async with self.session_manager.engine.begin() as connection:
            changes = await ensure_required_schema(connection)
            await validate_required_tables(connection)
        if changes:
            log.info("Applied DB schema changes: %s", ", ".join(changes))

    async def on_ready(self) -> None:
        if not self._commands_synced:
            await self._sync_commands()
            self._commands_synced = True

        if not self._startup_panels_done:
            self._startup_panels_done = True
            await self._publish_startup_panels()

        log.info("Bot ist online als %s", self.user)

    async def _sync_commands(self) -> None:
        if self.config.guild_id:
            guild = discord.Object(id=self.config.guild_id)
            try:
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                log.info("Synced %s commands to guild %s", len(synced), self.config.guild_id)
            except Exception:
                log.exception("Guild sync failed for %s", self.config.guild_id)
            return

        try:
            synced = await self.tree.sync()
            log.info("Synced %s global commands", len(synced))
        except Exception:
            log.exception("Global command sync failed")

    async def _publish_startup_panels(self) -> None:
        try:
            await self.context.sweep_expired_absences()
        except Exception:
            log.exception("Expiry sweep failed, skipping absence panel")
        else:
            await self._publish_configured_panel(ABSENCE_TOPIC)

        for topic in DOCUMENTATION_TOPICS:
            await self._publish_configured_panel(topic)

    async def _publish_configured_panel(self, topic: str) -> None:
        channel = await self._get_text_channel(self.config.channel_id_for_topic(topic))
        if channel is None:
            log.warning("Panel channel for topic=%s not reachable", topic)
            return
        if await self.context.publish_panel(channel, topic) is not None:
            log.info("Panel topic=%s published in channel %s", topic, channel.id)

    async def on_message(self, message) -> None:
        if getattr(message.author, "bot", False) or not message.attachments:
            return
        self.context.flows.handle_message(
            author_id=message.author.id,
            channel_id=message.channel.id,
            attachment_urls=[attachment.url for attachment in message.attachments],
            message=message,
        )

    async def _get_text_channel(self, channel_id: int | None):
        if not channel_id:
            return None
        channel = self.get_channel(int(channel_id))
        if isinstance(channel, (discord.TextChannel, discord.Thread)):
            return channel
        try:
            fetched = await self.fetch_channel(int(channel_id))
        except Exception:
            return None
        if isinstance(fetched, (discord.TextChannel, discord.Thread)):
            return fetched
        return None

    def _build_panel_message(self, render: PanelRender) -> dict[str, Any]:
        payload = panel_message_payload(render, logo_path=self.config.logo_path)
        payload["view"] = PanelView(self, render.topic)
        return payload

    async def _reply(self, interaction: Any, content: str, *, ephemeral: bool = True, **kwargs: Any) -> None:
        first = await self.acker.mark_or_get(int(getattr(interaction, "id", 0) or 0))
        if first and await safe_send_initial(interaction, content, ephemeral=ephemeral, **kwargs):
            return
        await safe_followup(interaction, content, ephemeral=ephemeral, **kwargs)

    async def _defer(self, interaction: Any, *, ephemeral: bool = True) -> bool:
        if not await self.acker.mark_or_get(int(getattr(interaction, "id", 0) or 0)):
            return False
        return await safe_defer(interaction, ephemeral=ephemeral)

    async def report_interaction_error(self, interaction: Any, error: Exception, *, source: str) -> None:
        log.error("Interaction failed source=%s", source, exc_info=error)
        await self._reply(interaction, GENERIC_ERROR_MESSAGE, ephemeral=True)

    # Panel buttons and modals

    async def handle_panel_button(self, interaction: Any, custom_id: str) -> None:
        if custom_id == ABSENCE_BUTTON_ID:
            await safe_send_modal(interaction, AbsenceModal(self))
            return

        if custom_id == ABSENCE_END_BUTTON_ID:
            await self._defer(interaction, ephemeral=True)
            if await self.context.terminate_active_absence(interaction.user):
                await safe_followup(interaction, "Deine Abmeldung wurde beendet. Willkommen zurueck!", ephemeral=True)
            else:
                await safe_followup(interaction, "Du hast keine aktive Abmeldung.", ephemeral=True)
            return

        parts = custom_id.split(":")
        if len(parts) == 3 and parts[0] == "doku" and parts[2] == "start" and is_documentation_topic(parts[1]):
            await safe_send_modal(interaction, DocumentationModal(self, parts[1]))
            return

        log.warning("Unknown panel button custom_id=%s", custom_id)

    async def submit_absence(self, interaction: Any, *, reason: str, start_raw: str, end_raw: str) -> None:
        await self._defer(interaction, ephemeral=True)
        try:
            record = await create_absence(
                self.repo,
                user_id=interaction.user.id,
                display_name=member_display_name(interaction.user),
                reason=reason,
                start_raw=start_raw,
                end_raw=end_raw,
            )
        except ValueError as exc:
            await safe_followup(interaction, str(exc), ephemeral=True)
            return
        except Exception:
            log.exception("Saving absence failed user_id=%s", interaction.user.id)
            await safe_followup(interaction, "Fehler beim Speichern der Abmeldung.", ephemeral=True)
            return

        await safe_followup(
            interaction,
            (
                f"Deine Abmeldung vom {format_date_de(record.start_date)} "
                f"bis {format_date_de(record.end_date)} wurde erfasst."
            ),
            ephemeral=True,
        )
        await self.context.refresh_panels(ABSENCE_TOPIC)

    async def submit_documentation(
        self,
        interaction: Any,
        topic: str,
        *,
        customer_name: str,
        plate: str,
        description: str | None,
        color: str | None,
    ) -> None:
        await self._defer(interaction, ephemeral=True)
        try:
            form = build_documentation_form(
                topic,
                customer_name=customer_name,
                plate=plate,
                description=description,
                color=color,
            )
        except ValueError as exc:
            await safe_followup(interaction, str(exc), ephemeral=True)
            return

        try:
            await self.context.begin_submission_flow(
                user=interaction.user,
                channel=interaction.channel,
                topic=topic,
                form_data=form,
                interaction=interaction,
            )
        except Exception:
            log.exception("Starting documentation failed topic=%s user_id=%s", topic, interaction.user.id)
            await safe_followup(interaction, "Fehler beim Speichern der Dokumentation.", ephemeral=True)

    async def choose_image_option(self, interaction: Any, topic: str, *, attach: bool) -> None:
        if not self.context.flows.dispatch_choice(interaction.user.id, topic, attach=attach):
            await self._reply(interaction, "Diese Auswahl ist nicht mehr aktiv.", ephemeral=True)
            return

        await self.acker.mark_or_get(int(getattr(interaction, "id", 0) or 0))
        content = "Bild anhaengen ausgewaehlt." if attach else "Die Dokumentation wird ohne Bild veroeffentlicht."
        await safe_edit_interaction_message(interaction, content=content, view=None)

    # Submission flow presenter

    async def prompt_image_choice(self, flow: SubmissionFlow) -> None:
        if flow.interaction is None:
            return
        view = ImageChoiceView(self, topic=flow.topic, user_id=flow.user_id, timeout=flow.window_seconds)
        await safe_followup(
            flow.interaction,
            (
                f"Dokumentation #{flow.record.id} wurde gespeichert. Moechtest du ein Bild anhaengen?\n"
                f"Du hast {int(flow.window_seconds)} Sekunden Zeit, sonst wird ohne Bild veroeffentlicht."
            ),
            ephemeral=True,
            view=view,
        )

    async def prompt_upload(self, flow: SubmissionFlow) -> None:
        if flow.interaction is None:
            return
        await safe_followup(
            flow.interaction,
            f"Lade jetzt innerhalb von {int(flow.window_seconds)} Sekunden ein Bild in diesem Kanal hoch.",
            ephemeral=True,
        )

    async def send_document(self, flow: SubmissionFlow, record: TuningDocumentRecord) -> None:
        message = await safe_send_channel_message(
            flow.channel,
            **documentation_payload(record, logo_path=self.config.logo_path),
        )
        if message is None:
            raise RuntimeError(f"Documentation embed for #{record.id} could not be sent")
        if flow.interaction is not None:
            await safe_followup(flow.interaction, "Dokumentation wurde erfasst!", ephemeral=True)

    async def notify(self, flow: SubmissionFlow, content: str) -> None:
        if flow.interaction is None:
            return
        await safe_followup(flow.interaction, content, ephemeral=True)

    # Slash commands

    async def _publish_panel_here(self, interaction: Any, topic: str) -> None:
        await self._defer(interaction, ephemeral=True)
        if interaction.channel is None:
            await safe_followup(interaction, "Nur in einem Textkanal nutzbar.", ephemeral=True)
            return
        message_id = await self.context.publish_panel(interaction.channel, topic)
        if message_id is None:
            await safe_followup(interaction, "Fehler beim Erstellen des Panels.", ephemeral=True)
            return
        await safe_followup(interaction, "Panel wurde erstellt/aktualisiert!", ephemeral=True)

    async def _document_directly(self, interaction: Any, topic: str, bild: discord.Attachment, **fields: Any) -> None:
        await self._defer(interaction, ephemeral=True)
        if not _is_image_attachment(bild):
            await safe_followup(interaction, "Bitte lade ein Bild hoch.", ephemeral=True)
            return
        try:
            form = build_documentation_form(topic, **fields)
        except ValueError as exc:
            await safe_followup(interaction, str(exc), ephemeral=True)
            return

        record = await create_documentation(
            self.repo,
            topic,
            form,
            author_id=interaction.user.id,
            author_name=member_display_name(interaction.user),
            image_url=bild.url,
        )
        channel = await self._get_text_channel(self.config.channel_id_for_topic(topic)) or interaction.channel
        sent = await safe_send_channel_message(
            channel,
            **documentation_payload(record, logo_path=self.config.logo_path),
        )
        if sent is None:
            await safe_followup(
                interaction,
                f"Dokumentation #{record.id} gespeichert, konnte aber nicht gepostet werden.",
                ephemeral=True,
            )
            return
        await safe_followup(interaction, "Dokumentation wurde erfasst!", ephemeral=True)
        await self.context.refresh_panels(topic)

    def _register_commands(self) -> None:
        @self.tree.error
        async def on_app_command_error(interaction, error: app_commands.AppCommandError) -> None:
            if isinstance(error, app_commands.CheckFailure):
                await self._reply(interaction, NO_PERMISSION_MESSAGE, ephemeral=True)
                return
            command_name = getattr(getattr(interaction, "command", None), "name", None)
            log.error("Command failed command=%s", command_name, exc_info=error)
            await self._reply(interaction, GENERIC_ERROR_MESSAGE, ephemeral=True)

        @self.tree.command(name="abmelden", description="Melde dich fuer einen Zeitraum ab")
        @app_commands.describe(
            grund="Grund fuer die Abmeldung",
            von="Startdatum (TT.MM.JJJJ oder JJJJ-MM-TT)",
            bis="Enddatum (TT.MM.JJJJ oder JJJJ-MM-TT)",
        )
        async def abmelden_cmd(interaction, grund: str, von: str, bis: str):
            await self._defer(interaction, ephemeral=True)
            try:
                record = await create_absence(
                    self.repo,
                    user_id=interaction.user.id,
                    display_name=member_display_name(interaction.user),
                    reason=grund,
                    start_raw=von,
                    end_raw=bis,
                    allow_iso=True,
                )
            except ValueError as exc:
                await safe_followup(interaction, str(exc), ephemeral=True)
                return

            await safe_followup(
                interaction,
                (
                    f"Deine Abmeldung vom {format_date_de(record.start_date)} "
                    f"bis {format_date_de(record.end_date)} wurde erfasst."
                ),
                ephemeral=True,
            )
            await self.context.refresh_panels(ABSENCE_TOPIC)

        @self.tree.command(name="abmeldungen", description="Zeige aktive Abmeldungen an")
        @app_commands.describe(benutzer="Abmeldungen eines bestimmten Benutzers anzeigen")
        async def abmeldungen_cmd(interaction, benutzer: Optional[discord.User] = None):
            records = await self.repo.list_active_absences(
                user_id=benutzer.id if benutzer else None,
                newest_first=True,
                limit=ABSENCE_LIST_LIMIT,
            )
            if not records:
                await self._reply(interaction, "Keine aktiven Abmeldungen gefunden.", ephemeral=True)
                return
            await self._reply(interaction, "", ephemeral=True, embed=absence_list_embed(records))

        @self.tree.command(name="abmeldung-loeschen", description="Loesche eine Abmeldung")
        @app_commands.describe(absence_id="ID der Abmeldung")
        @app_commands.rename(absence_id="id")
        async def abmeldung_loeschen_cmd(interaction, absence_id: int):
            result = await deactivate_absence_by_id(
                self.repo,
                absence_id=absence_id,
                actor_id=interaction.user.id,
                actor_is_admin=_has_guild_permission(interaction, "administrator"),
            )
            if result.reason == "not_found":
                await self._reply(interaction, "Abmeldung nicht gefunden.", ephemeral=True)
                return
            if result.reason == "forbidden":
                await self._reply(interaction, "Du kannst nur deine eigenen Abmeldungen loeschen.", ephemeral=True)
                return
            if result.reason == "already_inactive":
                await self._reply(interaction, f"Abmeldung #{absence_id} ist bereits beendet.", ephemeral=True)
                return

            await self._reply(interaction, f"Abmeldung #{absence_id} wurde geloescht.", ephemeral=True)
            await self.context.refresh_panels(ABSENCE_TOPIC)

        @self.tree.command(name="sanktion", description="Erteile eine Sanktion an einen Benutzer")
        @app_commands.describe(
            benutzer="Der zu sanktionierende Benutzer",
            typ="Art der Sanktion",
            grund="Grund fuer die Sanktion",
            geldstrafe="Hoehe der Geldstrafe in $",
        )
        @app_commands.choices(
            typ=[app_commands.Choice(name=label, value=value) for value, label in SANCTION_KIND_CHOICES]
        )
        @app_commands.default_permissions(moderate_members=True)
        @_permission_check("moderate_members")
        async def sanktion_cmd(
            interaction,
            benutzer: discord.User,
            typ: app_commands.Choice[str],
            grund: str,
            geldstrafe: app_commands.Range[int, 0],
        ):
            await self._defer(interaction, ephemeral=True)
            try:
                record = await issue_sanction(
                    self.repo,
                    user_id=benutzer.id,
                    display_name=member_display_name(benutzer),
                    kind=typ.value,
                    reason=grund,
                    fine_amount=geldstrafe,
                    issuer_id=interaction.user.id,
                    issuer_name=member_display_name(interaction.user),
                )
            except ValueError as exc:
                await safe_followup(interaction, str(exc), ephemeral=True)
                return

            channel = await self._get_text_channel(self.config.sanction_channel_id)
            sent = None
            if channel is not None:
                sent = await safe_send_channel_message(channel, embed=sanction_embed(record))
            if sent is None:
                await safe_followup(
                    interaction,
                    f"Sanktion #{record.id} wurde gespeichert, der Sanktionskanal ist aber nicht erreichbar.",
                    ephemeral=True,
                )
                return
            await safe_followup(
                interaction,
                "Sanktion wurde ausgestellt und im Sanktionskanal angekuendigt.",
                ephemeral=True,
            )

        @self.tree.command(name="sanktionen", description="Zeige Sanktionen an")
        @app_commands.describe(benutzer="Sanktionen eines bestimmten Benutzers anzeigen")
        async def sanktionen_cmd(interaction, benutzer: Optional[discord.User] = None):
            records = await list_sanctions_for_display(
                self.repo,
                user_id=benutzer.id if benutzer else None,
                limit=SANCTION_LIST_LIMIT,
            )
            if not records:
                await self._reply(interaction, "Keine Sanktionen gefunden.", ephemeral=True)
                return
            title = f"Sanktionen von {benutzer}" if benutzer else "Aktive Sanktionen"
            await self._reply(interaction, "", ephemeral=True, embed=sanction_list_embed(records, title=title))

        @self.tree.command(name="sanktion-aufheben", description="Hebe eine Sanktion auf")
        @app_commands.describe(sanction_id="ID der Sanktion")
        @app_commands.rename(sanction_id="id")
        @app_commands.default_permissions(moderate_members=True)
        @_permission_check("moderate_members")
        async def sanktion_aufheben_cmd(interaction, sanction_id: int):
            result = await revoke_sanction(self.repo, sanction_id=sanction_id, actor_id=interaction.user.id)
            if not result.success or result.sanction is None:
                await self._reply(interaction, "Sanktion nicht gefunden.", ephemeral=True)
                return
            embed = sanction_revoked_embed(result.sanction, actor_name=str(interaction.user))
            await self._reply(interaction, "", ephemeral=False, embed=embed)

        @self.tree.command(name="userinfo", description="Zeige Informationen ueber einen Benutzer")
        @app_commands.describe(benutzer="Der Benutzer")
        async def userinfo_cmd(interaction, benutzer: Optional[discord.User] = None):
            target = benutzer or interaction.user
            summary = await build_user_summary(self.repo, target.id)
            await self._reply(interaction, "", ephemeral=True, embed=userinfo_embed(target, summary))

        @self.tree.command(name="panel", description="Erstelle/Aktualisiere das Abmeldungs-Panel im aktuellen Kanal")
        @app_commands.default_permissions(administrator=True)
        @_permission_check("administrator")
        async def panel_cmd(interaction):
            await self._publish_panel_here(interaction, ABSENCE_TOPIC)

        @self.tree.command(
            name="tuningchip-panel",
            description="Erstelle/Aktualisiere das Tuningchip-Panel im aktuellen Kanal",
        )
        @app_commands.default_permissions(administrator=True)
        @_permission_check("administrator")
        async def tuningchip_panel_cmd(interaction):
            await self._publish_panel_here(interaction, TUNINGCHIP_TOPIC)

        @self.tree.command(
            name="stance-panel",
            description="Erstelle/Aktualisiere das Stance-Tuning-Panel im aktuellen Kanal",
        )
        @app_commands.default_permissions(administrator=True)
        @_permission_check("administrator")
        async def stance_panel_cmd(interaction):
            await self._publish_panel_here(interaction, STANCE_TOPIC)

        @self.tree.command(
            name="xenon-panel",
            description="Erstelle/Aktualisiere das Xenon-Tuning-Panel im aktuellen Kanal",
        )
        @app_commands.default_permissions(administrator=True)
        @_permission_check("administrator")
        async def xenon_panel_cmd(interaction):
            await self._publish_panel_here(interaction, XENON_TOPIC)

        @self.tree.command(name="tuningchip", description="Dokumentiere einen verbauten Tuningchip")
        @app_commands.describe(
            kunde="Name des Kunden",
            kennzeichen="Kennzeichen des Fahrzeugs",
            beschreibung="Durchgefuehrte Aenderungen",
            bild="Bild des Fahrzeugs",
        )
        async def tuningchip_cmd(interaction, kunde: str, kennzeichen: str, beschreibung: str, bild: discord.Attachment):
            await self._document_directly(
                interaction,
                TUNINGCHIP_TOPIC,
                bild,
                customer_name=kunde,
                plate=kennzeichen,
                description=beschreibung,
            )

        @self.tree.command(name="stance", description="Dokumentiere ein Stance-Tuning")
        @app_commands.describe(kunde="Name des Kunden", kennzeichen="Kennzeichen des Fahrzeugs", bild="Bild des Fahrzeugs")
        async def stance_cmd(interaction, kunde: str, kennzeichen: str, bild: discord.Attachment):
            await self._document_directly(interaction, STANCE_TOPIC, bild, customer_name=kunde, plate=kennzeichen)

        @self.tree.command(name="xenon", description="Dokumentiere verbaute Xenon-Scheinwerfer")
        @app_commands.describe(
            kunde="Name des Kunden",
            kennzeichen="Kennzeichen des Fahrzeugs",
            farbe="Xenon-Farbe",
            bild="Bild des Fahrzeugs",
        )
        async def xenon_cmd(interaction, kunde: str, kennzeichen: str, farbe: str, bild: discord.Attachment):
            await self._document_directly(
                interaction,
                XENON_TOPIC,
                bild,
                customer_name=kunde,
                plate=kennzeichen,
                color=farbe,
            )

        @self.tree.command(name="eigentuning", description="Dokumentiere ein Eigentuning")
        @app_commands.describe(
            rechnungssteller="Wer hat die Rechnung ausgestellt?",
            einkaufspreis="Einkaufspreis in $",
            rechnungshoehe="Hoehe der ausgestellten Rechnung in $",
        )
        async def eigentuning_cmd(
            interaction,
            rechnungssteller: str,
            einkaufspreis: app_commands.Range[int, 0],
            rechnungshoehe: app_commands.Range[int, 0],
        ):
            await self._defer(interaction, ephemeral=True)
            try:
                record = await record_eigentuning(
                    self.repo,
                    author_id=interaction.user.id,
                    author_name=member_display_name(interaction.user),
                    invoice_issuer=rechnungssteller,
                    purchase_price=einkaufspreis,
                    invoice_amount=rechnungshoehe,
                )
            except ValueError as exc:
                await safe_followup(interaction, str(exc), ephemeral=True)
                return

            sent = await safe_send_channel_message(
                interaction.channel,
                **eigentuning_payload(record, logo_path=self.config.logo_path),
            )
            if sent is None:
                await safe_followup(
                    interaction,
                    f"Eigentuning #{record.id} gespeichert, konnte aber nicht gepostet werden.",
                    ephemeral=True,
                )
                return
            await safe_followup(interaction, "Eigentuning wurde dokumentiert!", ephemeral=True)

    async def close(self) -> None:
        try:
            await self.context.close()
        except Exception:
            log.exception("Failed to stop running submission flows during shutdown.")
        try:
            await self.session_manager.dispose()
        except Exception:
            log.exception("Failed to dispose database engine during shutdown.")
        self.singleton_gate.release()
        await super().close()


def run() -> int:
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    try:
        config = load_config()
    except ValueError as exc:
        log.error("Config error: %s", exc)
        return 1

    setup_logging(config.discord_log_level)
    if not config.discord_token:
        log.error("DISCORD_TOKEN missing")
        return 1

    bot = WorkshopBot(config)

    try:
        bot.run(config.discord_token, log_handler=None)
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
