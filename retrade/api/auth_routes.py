from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional

from retrade.infrastructure.db import get_db
from retrade.application.auth_service import AuthService
from retrade.application.errors import NotAuthenticated
from retrade.application.schemas import RegisterRequest, LoginRequest, UserRead, CurrentUser
from retrade.application.session import (
    SessionData,
    set_session_cookie,
    clear_session_cookie,
    create_access_token,
)
from .deps import get_session, ok

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post("/register", status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    AuthService(db).register(payload)
    return ok("User registered successfully")

@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    result = AuthService(db).login(payload)
    response = JSONResponse(ok(
        "Login successful",
        user=UserRead.model_validate(result.user).model_dump(mode="json"),
        redirect_path=result.redirect_path,
    ))
    set_session_cookie(response, result.session)
    return response

@router.post("/logout")
def logout():
    response = JSONResponse(ok("Logged out successfully", redirect_path="/login"))
    clear_session_cookie(response)
    return response

@router.post("/token")
def issue_token(payload: LoginRequest, db: Session = Depends(get_db)):
    """Bearer token carrying the same claims as the session cookie, for API clients."""
    result = AuthService(db).login(payload)
    return {"access_token": create_access_token(result.session), "token_type": "bearer"}

@router.get("/me", response_model=CurrentUser)
def me(session: Optional[SessionData] = Depends(get_session), db: Session = Depends(get_db)):
    user = AuthService(db).current_user(session)
    if not user:
        raise NotAuthenticated()
    return user
