# agrimarket/api/routers/auth.py
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from agrimarket.data.database import get_db
from agrimarket.domain.schemas import AuthOut, RefreshTokenIn, UserCreate
from agrimarket.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthOut, status_code=201)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    return AuthService(db).register(payload)


@router.post("/login", response_model=AuthOut)
def login(user_id: int = Query(...), db: Session = Depends(get_db)):
    """
    Issues (or rotates) the refresh token of a user whose credentials
    were already checked by the auth gateway.
    """
    return AuthService(db).login(user_id)


@router.post("/refresh", response_model=AuthOut)
def refresh(payload: RefreshTokenIn, db: Session = Depends(get_db)):
    return AuthService(db).refresh(payload.refresh_token)


@router.post("/logout", status_code=204)
def logout(payload: RefreshTokenIn, db: Session = Depends(get_db)):
    AuthService(db).logout(payload.refresh_token)
    return Response(status_code=204)
