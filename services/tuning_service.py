from __future__ import annotations

import logging
from dataclasses import dataclass

from db.repository import EigentuningRecord, Repository, TuningDocumentRecord
from services.topics import DOCUMENTATION_TOPICS, TUNINGCHIP_TOPIC, XENON_TOPIC
from utils.text import PLATE_MAX_LENGTH, normalize_plate


log = logging.getLogger("werkstatt.tuning")

VARIANT_TITLES = {
    "tuningchip": "Tuningchip Dokumentation",
    "stance": "Stance-Tuning Dokumentation",
    "xenon": "Xenon-Scheinwerfer Dokumentation",
}


@dataclass(slots=True)
class DocumentationForm:
    customer_name: str
    plate: str
    description: str | None = None
    color: str | None = None


def build_documentation_form(
    variant: str,
    *,
    customer_name: str,
    plate: str,
    description: str | None = None,
    color: str | None = None,
) -> DocumentationForm:
    if variant not in DOCUMENTATION_TOPICS:
        raise ValueError(f"Unbekannte Dokumentationsart: {variant}")

    name = (customer_name or "").strip()
    if not name:
        raise ValueError("Bitte gib den Namen des Kunden an.")

    normalized_plate = normalize_plate(plate)
    if not normalized_plate:
        raise ValueError("Bitte gib ein Kennzeichen an.")
    if len(normalized_plate) > PLATE_MAX_LENGTH:
        raise ValueError(f"Das Kennzeichen darf hoechstens {PLATE_MAX_LENGTH} Zeichen haben.")

    form = DocumentationForm(customer_name=name, plate=normalized_plate)
    if variant == TUNINGCHIP_TOPIC:
        form.description = (description or "").strip()
        if not form.description:
            raise ValueError("Bitte beschreibe die durchgefuehrten Aenderungen.")
    if variant == XENON_TOPIC:
        form.color = (color or "").strip()
        if not form.color:
            raise ValueError("Bitte gib die Xenon-Farbe an.")
    return form


async def create_documentation(
    repo: Repository,
    variant: str,
    form: DocumentationForm,
    *,
    author_id: int,
    author_name: str,
    image_url: str | None = None,
) -> TuningDocumentRecord:
    record = await repo.create_tuning_document(
        variant,
        customer_name=form.customer_name,
        plate=form.plate,
        description=form.description,
        color=form.color,
        image_url=image_url,
        author_id=author_id,
        author_name=author_name,
    )
    log.info(
        "Documentation created variant=%s id=%s author_id=%s image=%s",
        variant,
        record.id,
        author_id,
        "yes" if image_url else "no",
    )
    return record


async def record_eigentuning(
    repo: Repository,
    *,
    author_id: int,
    author_name: str,
    invoice_issuer: str,
    purchase_price: int,
    invoice_amount: int,
) -> EigentuningRecord:
    issuer = (invoice_issuer or "").strip()
    if not issuer:
        raise ValueError("Bitte gib an, wer die Rechnung ausgestellt hat.")
    if int(purchase_price) < 0 or int(invoice_amount) < 0:
        raise ValueError("Betraege duerfen nicht negativ sein.")

    record = await repo.create_eigentuning(
        author_id=author_id,
        author_name=author_name,
        invoice_issuer=issuer,
        purchase_price=int(purchase_price),
        invoice_amount=int(invoice_amount),
    )
    log.info("Eigentuning recorded id=%s author_id=%s", record.id, author_id)
    return record
