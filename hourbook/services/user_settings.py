import logging
from typing import Any

from hourbook.core.errors import parse_model
from hourbook.db.mappers import settings_from_doc, settings_update_to_doc
from hourbook.db.store import Store
from hourbook.schemas.settings_schema import SettingsUpdate, UserSettings


logger = logging.getLogger(__name__)

USER_SETTINGS = "user_settings"


async def get_settings(store: Store) -> UserSettings:
    """The account's settings, or the defaults when none were saved yet."""
    doc = await store.find_one(USER_SETTINGS, {})
    return settings_from_doc(doc)


async def update_settings(store: Store, data: SettingsUpdate | dict[str, Any]) -> UserSettings:
    fields = settings_update_to_doc(parse_model(SettingsUpdate, data))
    if not fields:
        return await get_settings(store)
    doc = await store.upsert(USER_SETTINGS, {}, fields)
    logger.info("Settings updated for account %s: %s", store.account_id, ", ".join(sorted(fields)))
    return settings_from_doc(doc)
