from __future__ import annotations

from datetime import UTC, datetime, timedelta

from db.repository import SanctionRecord, TuningDocumentRecord
from services.panel_service import render_absence_panel
from views.embeds import (
    LOGO_ATTACHMENT_URL,
    documentation_embed,
    documentation_payload,
    panel_message_payload,
    sanction_embed,
)


CREATED = datetime(2024, 12, 20, 18, 0, tzinfo=UTC)


def _document(variant: str, image_url: str | None = None) -> TuningDocumentRecord:
    return TuningDocumentRecord(
        id=12,
        variant=variant,
        customer_name="Max Power",
        plate="LS1234",
        author_id=7,
        author_name="Kai",
        created_at=CREATED,
        description="Stage 2" if variant == "tuningchip" else None,
        color="Blau" if variant == "xenon" else None,
        image_url=image_url,
    )


def test_documentation_embed_without_image_has_no_image():
    embed = documentation_embed(_document("stance"))

    assert embed.image.url is None
    assert embed.footer.text == "Dokumentations-ID: #12"
    assert [field.name for field in embed.fields] == ["Kunde", "Kennzeichen", "Bearbeitet von"]


def test_documentation_embed_with_image_shows_it():
    embed = documentation_embed(_document("xenon", image_url="https://cdn.example.invalid/x.png"))

    assert embed.image.url == "https://cdn.example.invalid/x.png"
    assert "Xenon-Farbe" in [field.name for field in embed.fields]


def test_tuningchip_embed_lists_changes():
    embed = documentation_embed(_document("tuningchip"))

    assert embed.fields[-1].name == "Durchgefuehrte Aenderungen"
    assert embed.fields[-1].value == "Stage 2"


def test_payload_attaches_logo_only_when_file_exists(tmp_path):
    logo = tmp_path / "logo_firma.png"

    without = documentation_payload(_document("stance"), logo_path=logo.as_posix())
    logo.write_bytes(b"\x89PNG\r\n\x1a\n")
    with_logo = documentation_payload(_document("stance"), logo_path=logo.as_posix())

    assert "file" not in without
    assert with_logo["file"].filename == "logo_firma.png"
    assert with_logo["embed"].thumbnail.url == LOGO_ATTACHMENT_URL


def test_panel_payload_carries_footer():
    payload = panel_message_payload(render_absence_panel([], CREATED.date()), logo_path=None)

    assert payload["embed"].title == "Abmeldungssystem"
    assert payload["embed"].footer.text == "0 aktive Abmeldung(en)"


def test_suspension_embed_shows_end_date():
    record = SanctionRecord(
        id=3,
        user_id=5,
        display_name="Mia",
        kind="Suspendierung 2 Tage",
        reason="Fehlverhalten",
        fine_amount=2500,
        issuer_id=1,
        issuer_name="Chef",
        created_at=CREATED,
        expires_at=CREATED + timedelta(days=2),
    )

    embed = sanction_embed(record)
    values = {field.name: field.value for field in embed.fields}

    assert values["Geldstrafe"] == "$2.500"
    assert values["Suspendierung bis"] == "22.12.2024"
