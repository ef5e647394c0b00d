import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gameservers.core.auth import get_current_user
from gameservers.core.config import settings
from gameservers.core.db import get_db
from gameservers.core.security import (
    create_access_token,
    hash_password,
    new_verification_token,
    verify_password,
)
from gameservers.models.user import User
from gameservers.schemas.auth import LoginIn, LoginOut, MessageOut, RegisterIn, UserDetailOut, UserOut
from gameservers.services.email import send_verification_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def find_by_email(db: Session, email: str):
    return db.query(User).filter(func.lower(User.email) == email.lower()).first()


def find_by_username(db: Session, username: str):
    return db.query(User).filter(func.lower(User.username) == username.lower()).first()


@router.post("/register", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, background: BackgroundTasks, db: Session = Depends(get_db)):
    if find_by_email(db, payload.email):
        raise HTTPException(status_code=400, detail="Email already in use")
    if find_by_username(db, payload.username):
        raise HTTPException(status_code=400, detail="Username already taken")

    token = new_verification_token()
    u = User(
        username=payload.username,
        email=payload.email,
        password_hash=hash_password(payload.password),
        is_verified=False,
        is_admin=False,
        verification_token=token,
    )
    db.add(u)
    try:
        db.commit()
    except IntegrityError:
        # a concurrent registration took the name or address first
        db.rollback()
        raise HTTPException(status_code=400, detail="Email or username already in use")
    logger.info("Registered user %s", u.id)

    background.add_task(send_verification_email, payload.email, payload.username, token)
    return {"message": "User registered successfully. Please check your email to verify your account."}


@router.post("/login", response_model=LoginOut)
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    user = find_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_verified:
        raise HTTPException(status_code=403, detail="Please verify your email before logging in")

    access = create_access_token(user.id, user.is_admin)
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=access,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite="strict",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )
    return LoginOut(
        message="Login successful",
        access_token=access,
        user=UserOut.model_validate(user),
    )


@router.get("/verify-email", response_model=MessageOut)
def verify_email(token: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.verification_token == token).first()
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired token")

    user.is_verified = True
    user.verification_token = None
    db.commit()
    return {"message": "Email verified successfully. You can now log in."}


@router.post("/logout", response_model=MessageOut)
def logout(response: Response):
    response.delete_cookie(key=settings.AUTH_COOKIE_NAME, httponly=True, samesite="strict", path="/")
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserDetailOut)
def get_me(me: User = Depends(get_current_user)):
    return me
