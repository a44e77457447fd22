from typing import List
from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_summary_service
from app.db.mongo import get_db
from app.repositories.client_repo import ClientRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.payment_repo import PaymentRepository
from app.schemas.client import ClientCreate, ClientResponse, ClientSummaryResponse, ClientUpdate
from app.schemas.order import OrderResponse
from app.schemas.payment import PaymentResponse
from app.services.summary_service import SummaryService

router = APIRouter()


async def _require_client(client_id: str, db) -> ClientResponse:
    client = await ClientRepository(db).get_client(client_id)
    if not client:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found"
        )
    return ClientResponse.model_validate(client)


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(payload: ClientCreate, db = Depends(get_db)):
    """Create an active client."""
    client = await ClientRepository(db).create_client(payload)
    return ClientResponse.model_validate(client)


@router.get("", response_model=List[ClientResponse])
async def list_clients(only_active: bool = False, db = Depends(get_db)):
    """List clients, newest first."""
    clients = await ClientRepository(db).list_clients(only_active=only_active)
    return [ClientResponse.model_validate(c) for c in clients]


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(client_id: str, db = Depends(get_db)):
    return await _require_client(client_id, db)


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(client_id: str, payload: ClientUpdate, db = Depends(get_db)):
    client = await ClientRepository(db).update_client(client_id, payload)
    if not client:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found"
        )
    return ClientResponse.model_validate(client)


@router.post("/{client_id}/deactivate", response_model=ClientResponse)
async def deactivate_client(client_id: str, db = Depends(get_db)):
    """Deactivate a client. Clients are never deleted."""
    client = await ClientRepository(db).deactivate_client(client_id)
    if not client:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found"
        )
    return ClientResponse.model_validate(client)


@router.get("/{client_id}/summary", response_model=ClientSummaryResponse)
async def get_client_summary(
    client_id: str,
    db = Depends(get_db),
    summaries: SummaryService = Depends(get_summary_service)
):
    """Order counts and money totals for a client."""
    await _require_client(client_id, db)
    return await summaries.client_summary(client_id)


@router.get("/{client_id}/orders", response_model=List[OrderResponse])
async def list_client_orders(client_id: str, db = Depends(get_db)):
    await _require_client(client_id, db)
    orders = await OrderRepository(db).list_orders(client_id=client_id)
    return [OrderResponse.model_validate(o) for o in orders]


@router.get("/{client_id}/payments", response_model=List[PaymentResponse])
async def list_client_payments(client_id: str, db = Depends(get_db)):
    await _require_client(client_id, db)
    payments = await PaymentRepository(db).list_payments(client_id=client_id)
    return [PaymentResponse.model_validate(p) for p in payments]
