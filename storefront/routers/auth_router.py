import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import crud
from ..auth import authenticate_user, clear_session_cookie, create_access_token, get_current_user, set_session_cookie
from ..database import get_db
from ..schemas import Envelope, LoginRequest, SessionResponse, SessionUser, UserCreate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/register", response_model=Envelope, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, db: Session = Depends(get_db)):
    logger.info(f"Registration attempt for email: {user.email}")
    new_user = crud.create_user(db, user)
    logger.info(f"User created with ID: {new_user.id}")
    # no auto-login, the client is sent to the login page
    return {"success": True, "message": "Registration successful. You can now log in."}


@router.post("/login", response_model=Envelope)
def login(body: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = authenticate_user(db, email=body.email, password=body.password)
    set_session_cookie(response, create_access_token(user))
    logger.info(f"Login successful for user_id: {user.id}")
    return {"success": True, "message": "Login successful"}


@router.get("/logout", response_model=Envelope)
def logout(response: Response):
    clear_session_cookie(response)
    return {"success": True, "message": "Success Logout"}


@router.get("/checkauth", response_model=SessionResponse)
def check_auth(current_user: SessionUser = Depends(get_current_user)):
    return {"success": True, "authenticated": True, "user": current_user}
