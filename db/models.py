from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import BigInteger, Boolean, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    pass


class Abmeldung(Base):
    __tablename__ = "abmeldungen"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    grund: Mapped[str] = mapped_column(Text, nullable=False)
    von: Mapped[date] = mapped_column(Date, nullable=False)
    bis: Mapped[date] = mapped_column(Date, nullable=False)
    erstellt_am: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    aktiv: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Sanktion(Base):
    __tablename__ = "sanktionen"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    typ: Mapped[str] = mapped_column(String(64), nullable=False)
    grund: Mapped[str] = mapped_column(Text, nullable=False)
    geldstrafe: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    ausgestellt_von: Mapped[int] = mapped_column(BigInteger, nullable=False)
    ausgestellt_von_name: Mapped[str] = mapped_column(Text, nullable=False)
    erstellt_am: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    ablauf_datum: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    aktiv: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class PanelMessage(Base):
    __tablename__ = "panel_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    message_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    typ: Mapped[str] = mapped_column(String(32), nullable=False)


class Tuningchip(Base):
    __tablename__ = "tuningchip"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    kennzeichen: Mapped[str] = mapped_column(String(16), nullable=False)
    beschreibung: Mapped[str] = mapped_column(Text, nullable=False)
    bild_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    erstellt_von: Mapped[int] = mapped_column(BigInteger, nullable=False)
    erstellt_von_name: Mapped[str] = mapped_column(Text, nullable=False)
    erstellt_am: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Stance(Base):
    __tablename__ = "stance"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    kennzeichen: Mapped[str] = mapped_column(String(16), nullable=False)
    bild_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    erstellt_von: Mapped[int] = mapped_column(BigInteger, nullable=False)
    erstellt_von_name: Mapped[str] = mapped_column(Text, nullable=False)
    erstellt_am: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Xenon(Base):
    __tablename__ = "xenon"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    kennzeichen: Mapped[str] = mapped_column(String(16), nullable=False)
    farbe: Mapped[str] = mapped_column(Text, nullable=False)
    bild_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    erstellt_von: Mapped[int] = mapped_column(BigInteger, nullable=False)
    erstellt_von_name: Mapped[str] = mapped_column(Text, nullable=False)
    erstellt_am: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Eigentuning(Base):
    __tablename__ = "eigentuning"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    erstellt_von: Mapped[int] = mapped_column(BigInteger, nullable=False)
    erstellt_von_name: Mapped[str] = mapped_column(Text, nullable=False)
    rechnungssteller: Mapped[str] = mapped_column(Text, nullable=False)
    einkaufspreis: Mapped[int] = mapped_column(Integer, nullable=False)
    rechnungshoehe: Mapped[int] = mapped_column(Integer, nullable=False)
    erstellt_am: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


TUNING_DOCUMENT_MODELS: dict[str, type[Base]] = {
    "tuningchip": Tuningchip,
    "stance": Stance,
    "xenon": Xenon,
}


def mapped_public_table_names() -> tuple[str, ...]:
    return tuple(table.name for table in Base.metadata.sorted_tables)


REQUIRED_BOOT_TABLES = mapped_public_table_names()
