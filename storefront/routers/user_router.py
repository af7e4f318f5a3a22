from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import crud
from ..auth import get_current_user
from ..database import get_db
from ..errors import NotFound
from ..schemas import BalanceResponse, SessionUser, UserEdit, UserOut, UserResponse

router = APIRouter(prefix="/api", tags=["users"])


def _load_caller(db: Session, current_user: SessionUser):
    # the token's balance claim may be stale, always read the stored record
    user = crud.get_user_by_id(db, current_user.id)
    if user is None:
        raise NotFound("User not found.")
    return user


@router.get("/profile", response_model=BalanceResponse)
def read_profile(current_user: SessionUser = Depends(get_current_user), db: Session = Depends(get_db)):
    user = _load_caller(db, current_user)
    return {"success": True, "balance": user.balance}


@router.get("/user", response_model=UserResponse)
def read_user(current_user: SessionUser = Depends(get_current_user), db: Session = Depends(get_db)):
    user = _load_caller(db, current_user)
    return {"success": True, "message": "User Page", "user": UserOut.model_validate(user)}


@router.put("/userEdit", response_model=UserResponse)
def edit_user(
    body: UserEdit,
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = crud.update_profile(db, current_user.id, name=body.name, email=body.email)
    return {"success": True, "message": "User updated successfully", "user": UserOut.model_validate(user)}
