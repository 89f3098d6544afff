from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from marketplace.core.db import get_db
from marketplace.core.security import create_access_token
from marketplace.schemas.auth import LoginIn, SignupIn, TokenOut
from marketplace.schemas.profile import MyProfileOut
from marketplace.routers.profiles import to_my_profile
from marketplace.services import profiles

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=MyProfileOut, status_code=status.HTTP_201_CREATED)
def signup(payload: SignupIn, db: Session = Depends(get_db)):
    user = profiles.register(
        db,
        email=payload.email,
        password=payload.password,
        username=payload.username,
        name=payload.name,
        phone=payload.phone,
        city=payload.city,
    )
    return to_my_profile(user.profile)


@router.post("/login", response_model=TokenOut, status_code=status.HTTP_200_OK)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = profiles.authenticate(db, payload.email, payload.password)
    if not user:
        raise HTTPException(status_code=401, detail="invalid_credentials")
    if user.profile is not None and user.profile.banned:
        raise HTTPException(status_code=403, detail="user_banned")

    return TokenOut(access_token=create_access_token(sub=str(user.id)), user_id=user.id)
