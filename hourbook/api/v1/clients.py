from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from hourbook.api.deps import get_store
from hourbook.db.store import Store
from hourbook.schemas.client_schema import Client, ClientIn, ClientUpdate
from hourbook.schemas.report_schema import ClientSummary
from hourbook.services import clients as client_service
from hourbook.services.reports import client_summary


router = APIRouter(prefix="/clients", tags=["clients"])


@router.post("", response_model=Client, status_code=status.HTTP_201_CREATED)
async def create_client(payload: ClientIn, store: Store = Depends(get_store)):
    return await client_service.add_client(store, payload)


@router.get("", response_model=list[Client])
async def list_clients(store: Store = Depends(get_store)):
    return await client_service.list_clients(store)


@router.get("/{client_id}", response_model=Client)
async def get_client(client_id: str, store: Store = Depends(get_store)):
    return await client_service.get_client(store, client_id)


@router.patch("/{client_id}", response_model=Client)
async def update_client(client_id: str, payload: ClientUpdate, store: Store = Depends(get_store)):
    return await client_service.update_client(store, client_id, payload)


@router.get("/{client_id}/summary", response_model=ClientSummary)
async def get_client_summary(
    client_id: str,
    today: Optional[date] = Query(None),
    store: Store = Depends(get_store),
):
    return await client_summary(store, client_id, today)
