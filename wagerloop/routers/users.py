"""User discovery routes: search by username and follow suggestions."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import UserCardListResponse, UserCardResponse
from ..services import get_optional_user, search_users, suggest_users

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/search", response_model=UserCardListResponse)
async def search_users_endpoint(
    q: str = Query("", max_length=150),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> UserCardListResponse:
    items = search_users(db, query=q, viewer_id=viewer.id if viewer else None, limit=limit)
    return UserCardListResponse(items=[UserCardResponse(**item) for item in items])


@router.get("/suggested", response_model=UserCardListResponse)
async def suggested_users_endpoint(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> UserCardListResponse:
    items = suggest_users(db, viewer_id=viewer.id if viewer else None, limit=limit)
    return UserCardListResponse(items=[UserCardResponse(**item) for item in items])
