"""
Wallet API Endpoints.

Provides:
- Balance of the caller's personal and sponsored wallets
- Deposits
- Transaction history
- Transaction reversal (super-admin)

Source: wallet and transaction controllers
Verified: 2026-10-18
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from careledger.api.deps import get_current_actor, require_admin
from careledger.core.actor import Actor
from careledger.db.connection import get_session
from careledger.schemas.wallet import (
    AddFundsRequest,
    BalanceResponse,
    ReverseRequest,
    TransactionResponse,
    WalletResponse,
)
from careledger.services.wallet_ledger import WalletLedger
from careledger.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/wallets",
    tags=["wallets"],
)

admin_router = APIRouter(
    prefix="/api/v1/admin/transactions",
    tags=["wallets-admin"],
)


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> BalanceResponse:
    balances = await WalletLedger(session).get_balance(actor.id)
    return BalanceResponse(
        personal=WalletResponse.model_validate(balances.personal),
        sponsored=WalletResponse.model_validate(balances.sponsored),
    )


@router.post("/funds", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def add_funds(
    body: AddFundsRequest,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> TransactionResponse:
    """Deposit into one of the caller's wallets."""
    transaction = await WalletLedger(session).add_funds(
        actor.id,
        body.amount,
        wallet_type=body.wallet_type,
        payment_method=body.payment_method,
        currency=body.currency,
    )
    return TransactionResponse.model_validate(transaction)


@router.get("/transactions", response_model=list[TransactionResponse])
async def list_transactions(
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
) -> list[TransactionResponse]:
    transactions = await WalletLedger(session).list_transactions(actor.id, limit=limit)
    return [TransactionResponse.model_validate(t) for t in transactions]


@admin_router.post("/{transaction_id}/reverse", response_model=TransactionResponse)
async def reverse_transaction(
    transaction_id: UUID,
    body: ReverseRequest,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> TransactionResponse:
    """Reverse a completed transaction; returns the new reversal entry."""
    ledger = WalletLedger(session)
    transaction = await ledger.get_transaction(transaction_id)
    reversal = await ledger.reverse(transaction, body.reason)
    logger.info(f"Transaction {transaction.transaction_number} reversed by {actor.id}")
    return TransactionResponse.model_validate(reversal)
