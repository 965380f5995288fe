import pytest

from hourbook.core.errors import ValidationError
from hourbook.db.store import Store
from hourbook.services.user_settings import get_settings, update_settings


async def test_defaults_without_document(store):
    settings = await get_settings(store)
    assert settings.pdf_invoice_title == "INVOICE"
    assert settings.pdf_bill_to_label == "BILL TO"
    assert settings.pdf_header_color == "#0F2847"
    assert settings.pdf_accent_color == "#00a3e0"
    assert settings.pdf_footer_text == "Thank you for your business"
    assert settings.email_subject == "Invoice {{invoice_number}} from {{company_name}}"
    assert settings.email_include_line_items is False


async def test_partial_update_upserts_once(db, store):
    first = await update_settings(store, {"company_name": "Northwind", "email_primary_color": "#112233"})
    second = await update_settings(store, {"company_phone": "555-0100"})

    assert first.company_name == "Northwind"
    assert second.company_name == "Northwind"
    assert second.company_phone == "555-0100"
    assert second.email_primary_color == "#112233"
    assert second.pdf_invoice_title == "INVOICE"
    assert await db["user_settings"].count_documents({}) == 1


async def test_settings_are_per_account(db, store):
    await update_settings(store, {"company_name": "Northwind"})
    other = await get_settings(Store(db, "another-account"))
    assert other.company_name == ""


async def test_rejects_bad_color(store):
    with pytest.raises(ValidationError):
        await update_settings(store, {"pdf_header_color": "navy"})


async def test_null_columns_fall_back_to_defaults(db, store):
    await update_settings(store, {"company_name": "Northwind"})
    await db["user_settings"].update_one({}, {"$set": {"pdf_invoice_title": None}})
    assert (await get_settings(store)).pdf_invoice_title == "INVOICE"
