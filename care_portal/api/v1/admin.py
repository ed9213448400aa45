from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_admin_user
from ...services.account_service import AccountService
from ...schemas.account import AccountResponse, AdminStats
from ...models.user import User

router = APIRouter(prefix="/admin", tags=["Admin"])

@router.get("/patients", response_model=List[AccountResponse])
async def list_patients(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """List all patients."""
    patients = AccountService(db).list_patients(admin)
    return [AccountResponse.model_validate(p) for p in patients]

@router.get("/users", response_model=List[AccountResponse])
async def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """List all accounts."""
    users = AccountService(db).list_accounts(admin, skip=skip, limit=limit)
    return [AccountResponse.model_validate(u) for u in users]

@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Delete an account and everything that references it."""
    AccountService(db).delete_account(admin, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/stats", response_model=AdminStats)
async def stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Headline counts for the admin dashboard."""
    return AccountService(db).stats(admin)
