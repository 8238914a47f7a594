from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import delete, func, select, update

from db.models import (
    TUNING_DOCUMENT_MODELS,
    Abmeldung,
    Eigentuning,
    PanelMessage,
    Sanktion,
)
from db.session import SessionManager
from utils.time_utils import berlin_now_utc


@dataclass(slots=True)
class AbsenceRecord:
    id: int
    user_id: int
    display_name: str
    reason: str
    start_date: date
    end_date: date
    created_at: datetime
    active: bool = True


@dataclass(slots=True)
class SanctionRecord:
    id: int
    user_id: int
    display_name: str
    kind: str
    reason: str
    fine_amount: int
    issuer_id: int
    issuer_name: str
    created_at: datetime
    expires_at: datetime | None = None
    active: bool = True


@dataclass(slots=True)
class PanelMessageRecord:
    id: int
    channel_id: int
    message_id: int
    topic: str


@dataclass(slots=True)
class TuningDocumentRecord:
    id: int
    variant: str
    customer_name: str
    plate: str
    author_id: int
    author_name: str
    created_at: datetime
    description: str | None = None
    color: str | None = None
    image_url: str | None = None


@dataclass(slots=True)
class EigentuningRecord:
    id: int
    author_id: int
    author_name: str
    invoice_issuer: str
    purchase_price: int
    invoice_amount: int
    created_at: datetime


def _absence_record(row: Abmeldung) -> AbsenceRecord:
    return AbsenceRecord(
        id=row.id,
        user_id=int(row.user_id),
        display_name=row.username,
        reason=row.grund,
        start_date=row.von,
        end_date=row.bis,
        created_at=row.erstellt_am,
        active=bool(row.aktiv),
    )


def _sanction_record(row: Sanktion) -> SanctionRecord:
    return SanctionRecord(
        id=row.id,
        user_id=int(row.user_id),
        display_name=row.username,
        kind=row.typ,
        reason=row.grund,
        fine_amount=int(row.geldstrafe or 0),
        issuer_id=int(row.ausgestellt_von),
        issuer_name=row.ausgestellt_von_name,
        created_at=row.erstellt_am,
        expires_at=row.ablauf_datum,
        active=bool(row.aktiv),
    )


def _panel_record(row: PanelMessage) -> PanelMessageRecord:
    return PanelMessageRecord(
        id=row.id,
        channel_id=int(row.channel_id),
        message_id=int(row.message_id),
        topic=row.typ,
    )


def _tuning_record(variant: str, row: Any) -> TuningDocumentRecord:
    return TuningDocumentRecord(
        id=row.id,
        variant=variant,
        customer_name=row.name,
        plate=row.kennzeichen,
        author_id=int(row.erstellt_von),
        author_name=row.erstellt_von_name,
        created_at=row.erstellt_am,
        description=getattr(row, "beschreibung", None),
        color=getattr(row, "farbe", None),
        image_url=row.bild_url,
    )


def _eigentuning_record(row: Eigentuning) -> EigentuningRecord:
    return EigentuningRecord(
        id=row.id,
        author_id=int(row.erstellt_von),
        author_name=row.erstellt_von_name,
        invoice_issuer=row.rechnungssteller,
        purchase_price=int(row.einkaufspreis),
        invoice_amount=int(row.rechnungshoehe),
        created_at=row.erstellt_am,
    )


def _tuning_model(variant: str) -> Any:
    model = TUNING_DOCUMENT_MODELS.get(variant)
    if model is None:
        raise ValueError(f"Unknown tuning variant: {variant}")
    return model


class Repository:
    """Relational store for all persisted rows.

    Every public method is one unit of work: it opens a session, runs its
    statements and commits before returning, so no transaction is ever held
    across Discord I/O.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self.session_manager = session_manager

    # ---- absences -------------------------------------------------------

    async def create_absence(
        self,
        *,
        user_id: int,
        display_name: str,
        reason: str,
        start_date: date,
        end_date: date,
        created_at: datetime | None = None,
    ) -> AbsenceRecord:
        row = Abmeldung(
            user_id=int(user_id),
            username=display_name,
            grund=reason,
            von=start_date,
            bis=end_date,
            erstellt_am=created_at or berlin_now_utc(),
            aktiv=True,
        )
        async with self.session_manager.session_scope() as session:
            session.add(row)
            await session.flush()
            return _absence_record(row)

    async def get_absence(self, absence_id: int) -> AbsenceRecord | None:
        async with self.session_manager.session_scope() as session:
            row = await session.get(Abmeldung, int(absence_id))
            return _absence_record(row) if row is not None else None

    async def list_active_absences(
        self,
        *,
        user_id: int | None = None,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[AbsenceRecord]:
        stmt = select(Abmeldung).where(Abmeldung.aktiv.is_(True))
        if user_id is not None:
            stmt = stmt.where(Abmeldung.user_id == int(user_id))
        if newest_first:
            stmt = stmt.order_by(Abmeldung.erstellt_am.desc(), Abmeldung.id.desc())
        else:
            stmt = stmt.order_by(Abmeldung.von.asc(), Abmeldung.id.asc())
        if limit is not None:
            stmt = stmt.limit(int(limit))
        async with self.session_manager.session_scope() as session:
            rows = (await session.scalars(stmt)).all()
            return [_absence_record(row) for row in rows]

    async def latest_active_absence(self, user_id: int) -> AbsenceRecord | None:
        rows = await self.list_active_absences(user_id=user_id, newest_first=True, limit=1)
        return rows[0] if rows else None

    async def deactivate_absence(self, absence_id: int) -> bool:
        stmt = update(Abmeldung).where(Abmeldung.id == int(absence_id), Abmeldung.aktiv.is_(True)).values(aktiv=False)
        async with self.session_manager.session_scope() as session:
            result = await session.execute(stmt)
            return bool(result.rowcount)

    async def deactivate_absences_ending_before(self, cutoff: date) -> int:
        stmt = update(Abmeldung).where(Abmeldung.aktiv.is_(True), Abmeldung.bis < cutoff).values(aktiv=False)
        async with self.session_manager.session_scope() as session:
            result = await session.execute(stmt)
            return int(result.rowcount or 0)

    async def count_active_absences(self, user_id: int) -> int:
        stmt = select(func.count(Abmeldung.id)).where(
            Abmeldung.user_id == int(user_id),
            Abmeldung.aktiv.is_(True),
        )
        async with self.session_manager.session_scope() as session:
            return int(await session.scalar(stmt) or 0)

    # ---- sanctions ------------------------------------------------------

    async def create_sanction(
        self,
        *,
        user_id: int,
        display_name: str,
        kind: str,
        reason: str,
        fine_amount: int,
        issuer_id: int,
        issuer_name: str,
        created_at: datetime,
        expires_at: datetime | None,
    ) -> SanctionRecord:
        row = Sanktion(
            user_id=int(user_id),
            username=display_name,
            typ=kind,
            grund=reason,
            geldstrafe=int(fine_amount),
            ausgestellt_von=int(issuer_id),
            ausgestellt_von_name=issuer_name,
            erstellt_am=created_at,
            ablauf_datum=expires_at,
            aktiv=True,
        )
        async with self.session_manager.session_scope() as session:
            session.add(row)
            await session.flush()
            return _sanction_record(row)

    async def get_sanction(self, sanction_id: int) -> SanctionRecord | None:
        async with self.session_manager.session_scope() as session:
            row = await session.get(Sanktion, int(sanction_id))
            return _sanction_record(row) if row is not None else None

    async def list_sanctions(
        self,
        *,
        user_id: int | None = None,
        active_only: bool = False,
        limit: int | None = None,
    ) -> list[SanctionRecord]:
        stmt = select(Sanktion)
        if user_id is not None:
            stmt = stmt.where(Sanktion.user_id == int(user_id))
        if active_only:
            stmt = stmt.where(Sanktion.aktiv.is_(True))
        stmt = stmt.order_by(Sanktion.erstellt_am.desc(), Sanktion.id.desc())
        if limit is not None:
            stmt = stmt.limit(int(limit))
        async with self.session_manager.session_scope() as session:
            rows = (await session.scalars(stmt)).all()
            return [_sanction_record(row) for row in rows]

    async def deactivate_sanction(self, sanction_id: int) -> bool:
        stmt = update(Sanktion).where(Sanktion.id == int(sanction_id)).values(aktiv=False)
        async with self.session_manager.session_scope() as session:
            result = await session.execute(stmt)
            return bool(result.rowcount)

    async def count_sanctions(self, user_id: int, *, active_only: bool = False) -> int:
        stmt = select(func.count(Sanktion.id)).where(Sanktion.user_id == int(user_id))
        if active_only:
            stmt = stmt.where(Sanktion.aktiv.is_(True))
        async with self.session_manager.session_scope() as session:
            return int(await session.scalar(stmt) or 0)

    # ---- panel messages -------------------------------------------------

    async def get_panel_message(self, channel_id: int, topic: str) -> PanelMessageRecord | None:
        stmt = (
            select(PanelMessage)
            .where(PanelMessage.channel_id == int(channel_id), PanelMessage.typ == topic)
            .order_by(PanelMessage.id.desc())
            .limit(1)
        )
        async with self.session_manager.session_scope() as session:
            row = await session.scalar(stmt)
            return _panel_record(row) if row is not None else None

    async def insert_panel_message(self, *, channel_id: int, message_id: int, topic: str) -> PanelMessageRecord:
        row = PanelMessage(channel_id=int(channel_id), message_id=int(message_id), typ=topic)
        async with self.session_manager.session_scope() as session:
            session.add(row)
            await session.flush()
            return _panel_record(row)

    async def delete_panel_message(self, row_id: int) -> bool:
        async with self.session_manager.session_scope() as session:
            result = await session.execute(delete(PanelMessage).where(PanelMessage.id == int(row_id)))
            return bool(result.rowcount)

    async def count_panel_messages(self, channel_id: int, topic: str) -> int:
        stmt = select(func.count(PanelMessage.id)).where(
            PanelMessage.channel_id == int(channel_id),
            PanelMessage.typ == topic,
        )
        async with self.session_manager.session_scope() as session:
            return int(await session.scalar(stmt) or 0)

    async def list_panel_channel_ids(self, topic: str) -> list[int]:
        stmt = select(PanelMessage.channel_id).where(PanelMessage.typ == topic).distinct()
        async with self.session_manager.session_scope() as session:
            return sorted(int(value) for value in (await session.scalars(stmt)).all())

    # ---- tuning documentation -------------------------------------------

    async def create_tuning_document(
        self,
        variant: str,
        *,
        customer_name: str,
        plate: str,
        author_id: int,
        author_name: str,
        description: str | None = None,
        color: str | None = None,
        image_url: str | None = None,
        created_at: datetime | None = None,
    ) -> TuningDocumentRecord:
        model = _tuning_model(variant)
        values: dict[str, Any] = {
            "name": customer_name,
            "kennzeichen": plate,
            "bild_url": image_url,
            "erstellt_von": int(author_id),
            "erstellt_von_name": author_name,
            "erstellt_am": created_at or berlin_now_utc(),
        }
        if variant == "tuningchip":
            values["beschreibung"] = description or ""
        if variant == "xenon":
            values["farbe"] = color or ""
        row = model(**values)
        async with self.session_manager.session_scope() as session:
            session.add(row)
            await session.flush()
            return _tuning_record(variant, row)

    async def get_tuning_document(self, variant: str, document_id: int) -> TuningDocumentRecord | None:
        model = _tuning_model(variant)
        async with self.session_manager.session_scope() as session:
            row = await session.get(model, int(document_id))
            return _tuning_record(variant, row) if row is not None else None

    async def set_tuning_document_image(self, variant: str, document_id: int, image_url: str) -> bool:
        model = _tuning_model(variant)
        stmt = update(model).where(model.id == int(document_id)).values(bild_url=image_url)
        async with self.session_manager.session_scope() as session:
            result = await session.execute(stmt)
            return bool(result.rowcount)

    # ---- eigentuning ----------------------------------------------------

    async def create_eigentuning(
        self,
        *,
        author_id: int,
        author_name: str,
        invoice_issuer: str,
        purchase_price: int,
        invoice_amount: int,
        created_at: datetime | None = None,
    ) -> EigentuningRecord:
        row = Eigentuning(
            erstellt_von=int(author_id),
            erstellt_von_name=author_name,
            rechnungssteller=invoice_issuer,
            einkaufspreis=int(purchase_price),
            rechnungshoehe=int(invoice_amount),
            erstellt_am=created_at or berlin_now_utc(),
        )
        async with self.session_manager.session_scope() as session:
            session.add(row)
            await session.flush()
            return _eigentuning_record(row)
