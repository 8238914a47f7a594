from __future__ import annotations

import pytest

from services.topics import STANCE_TOPIC, TUNINGCHIP_TOPIC, XENON_TOPIC
from services.tuning_service import build_documentation_form, create_documentation, record_eigentuning


def test_plate_is_trimmed_and_upper_cased():
    form = build_documentation_form(STANCE_TOPIC, customer_name="  Max Power ", plate=" ls 12 ")

    assert form.customer_name == "Max Power"
    assert form.plate == "LS 12"
    assert form.description is None and form.color is None


def test_plate_longer_than_eight_characters_is_rejected():
    with pytest.raises(ValueError, match="8"):
        build_documentation_form(STANCE_TOPIC, customer_name="Max", plate="ABCDEFGHI")


def test_tuningchip_requires_description():
    with pytest.raises(ValueError):
        build_documentation_form(TUNINGCHIP_TOPIC, customer_name="Max", plate="LS1", description="  ")

    form = build_documentation_form(TUNINGCHIP_TOPIC, customer_name="Max", plate="LS1", description="Stage 1")
    assert form.description == "Stage 1"


def test_xenon_requires_color():
    with pytest.raises(ValueError):
        build_documentation_form(XENON_TOPIC, customer_name="Max", plate="LS1")

    form = build_documentation_form(XENON_TOPIC, customer_name="Max", plate="LS1", color="Blau")
    assert form.color == "Blau"


@pytest.mark.parametrize(
    ("variant", "customer", "plate"),
    [
        ("felgen", "Max", "LS1"),
        (STANCE_TOPIC, "", "LS1"),
        (STANCE_TOPIC, "Max", "   "),
    ],
)
def test_invalid_forms_are_rejected(variant, customer, plate):
    with pytest.raises(ValueError):
        build_documentation_form(variant, customer_name=customer, plate=plate)


@pytest.mark.asyncio
async def test_documentation_is_stored_in_variant_table(repo):
    form = build_documentation_form(XENON_TOPIC, customer_name="Max", plate="ls1", color="Gelb")

    record = await create_documentation(repo, XENON_TOPIC, form, author_id=9, author_name="Kai")

    stored = await repo.get_tuning_document(XENON_TOPIC, record.id)
    assert stored.plate == "LS1"
    assert stored.color == "Gelb"
    assert stored.image_url is None
    assert stored.author_name == "Kai"
    assert await repo.get_tuning_document(STANCE_TOPIC, record.id) is None


@pytest.mark.asyncio
async def test_eigentuning_validation(repo):
    with pytest.raises(ValueError):
        await record_eigentuning(
            repo, author_id=1, author_name="Kai", invoice_issuer=" ", purchase_price=10, invoice_amount=20
        )
    with pytest.raises(ValueError):
        await record_eigentuning(
            repo, author_id=1, author_name="Kai", invoice_issuer="Chef", purchase_price=-1, invoice_amount=20
        )

    record = await record_eigentuning(
        repo, author_id=1, author_name="Kai", invoice_issuer=" Chef ", purchase_price=15000, invoice_amount=20000
    )
    assert (record.invoice_issuer, record.purchase_price, record.invoice_amount) == ("Chef", 15000, 20000)
