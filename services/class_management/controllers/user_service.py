from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError

from services.class_management.models.users import SchoolUser
from services.class_management.schemas.users import (
    SchoolUserCreate,
    SchoolUserOut,
    SchoolUserLoginRequest,
    SchoolUserLoginResponse,
)
from shared.auth import verify_password, get_password_hash, create_access_token, get_current_user, require_admin
from shared.db import get_db

router = APIRouter(prefix="/users", tags=["Users"])


# --- USER LOGIN ---
@router.post("/login", response_model=SchoolUserLoginResponse)
async def login(
    payload: SchoolUserLoginRequest,
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(SchoolUser).where(SchoolUser.email == payload.email)
    )
    user = result.scalars().first()

    if not user or not user.is_active or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    token_data = {
        "sub": user.email,
        "role": user.role.value,
        "user_id": str(user.id),
    }

    return SchoolUserLoginResponse(
        name=user.name,
        role=user.role,
        access_token=create_access_token(token_data)
    )


# --- REGISTER USER (ADMIN ONLY) ---
@router.post("/register", response_model=SchoolUserOut, status_code=status.HTTP_201_CREATED)
async def register_user(
    payload: SchoolUserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    require_admin(current_user)

    existing_user = await db.execute(select(SchoolUser).where(SchoolUser.email == payload.email))
    if existing_user.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists"
        )

    new_user = SchoolUser(
        name=payload.name,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        role=payload.role,
    )

    db.add(new_user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Integrity error while creating user")

    await db.refresh(new_user)
    return new_user
