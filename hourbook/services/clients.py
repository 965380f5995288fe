import logging
from typing import Any

from hourbook.core.errors import NotFoundError, parse_model
from hourbook.db.mappers import client_from_doc, client_to_doc, client_update_to_doc
from hourbook.db.store import Store
from hourbook.schemas.client_schema import Client, ClientIn, ClientUpdate


logger = logging.getLogger(__name__)

CLIENTS = "clients"


async def add_client(store: Store, data: ClientIn | dict[str, Any]) -> Client:
    payload = parse_model(ClientIn, data)
    doc = await store.insert(CLIENTS, client_to_doc(payload))
    logger.info("Client %s created for account %s", doc["_id"], store.account_id)
    return client_from_doc(doc)


async def get_client(store: Store, client_id: str) -> Client:
    doc = await store.get(CLIENTS, client_id)
    if not doc:
        raise NotFoundError("Client", client_id)
    return client_from_doc(doc)


async def list_clients(store: Store) -> list[Client]:
    docs = await store.find(CLIENTS, sort=[("name", 1)])
    return [client_from_doc(d) for d in docs]


async def update_client(store: Store, client_id: str, data: ClientUpdate | dict[str, Any]) -> Client:
    """Apply a partial update. A new hourly rate only affects invoices built later."""
    update = client_update_to_doc(parse_model(ClientUpdate, data))
    if update:
        matched = await store.update(CLIENTS, client_id, update)
        if not matched:
            raise NotFoundError("Client", client_id)
    return await get_client(store, client_id)
