# helpdesk_mini/backend/app/api/auth.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserRead
from ..services import identity
from ..services.ratelimit import rate_limited_origin

router = APIRouter(tags=["auth"], dependencies=[Depends(rate_limited_origin)])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    user, token = identity.register(
        db,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        role=payload.role,
    )
    return AuthResponse(
        message="User registered successfully",
        token=token,
        user=UserRead.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user, token = identity.authenticate(db, payload.email, payload.password)
    return AuthResponse(
        message="Login successful",
        token=token,
        user=UserRead.model_validate(user),
    )
