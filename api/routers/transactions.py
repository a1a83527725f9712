"""Transaction endpoints (/api/transactions*). All routes require the "user" role."""
from typing import List

from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy.exc import SQLAlchemyError

from api.auth import AuthenticatedUser, require_role
from api.database import BankAccountNotFoundError, Database
from api.db_instance import get_db
from api.models import Transaction, TransactionCreate

router = APIRouter(prefix="/api/transactions", tags=["transactions"])

require_user = require_role("user")


@router.post("", response_model=Transaction, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    data: TransactionCreate,
    user: AuthenticatedUser = Depends(require_user),
    db: Database = Depends(get_db)
):
    """Record a transaction for the current user."""
    try:
        return await db.create_transaction(
            user.user_id,
            data.amount,
            data.type.value,
            category=data.category,
            currency=data.currency,
            description=data.description,
            occurred_at=data.occurred_at,
            bank_account_id=data.bank_account_id,
        )
    except BankAccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SQLAlchemyError:
        raise HTTPException(status_code=400, detail="Failed to create transaction")


@router.get("", response_model=List[Transaction])
async def get_transactions(
    user: AuthenticatedUser = Depends(require_user),
    db: Database = Depends(get_db)
):
    """List the current user's transactions, newest first."""
    return await db.get_transactions(user.user_id)


@router.get("/{transaction_id}", response_model=Transaction)
async def get_transaction(
    transaction_id: int,
    user: AuthenticatedUser = Depends(require_user),
    db: Database = Depends(get_db)
):
    """Get one of the current user's transactions."""
    transaction = await db.get_transaction_by_id(transaction_id)
    # Other users' transactions are reported as missing
    if not transaction or transaction["user_id"] != user.user_id:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction
