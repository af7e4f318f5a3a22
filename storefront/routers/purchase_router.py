from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from .. import catalogue, crud
from ..auth import get_current_user
from ..database import get_db
from ..schemas import PurchaseListResponse, PurchaseResponse, RefundResponse, SessionUser

router = APIRouter(prefix="/api/buy", tags=["purchases"])


@router.get("/purchases", response_model=PurchaseListResponse)
def list_purchases(current_user: SessionUser = Depends(get_current_user), db: Session = Depends(get_db)):
    purchases = crud.get_purchases_by_user(db, current_user.id)
    return {
        "success": True,
        "message": "Success loading purchases" if purchases else "No purchases found",
        "count": len(purchases),
        "purchases": purchases,
    }


@router.post("/purchases/{product_id}", response_model=PurchaseResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase(
    product_id: str,
    request: Request,
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """First purchase of a catalogue product at its current price."""
    product = await catalogue.while_connected(request, catalogue.fetch_by_id(product_id))

    def record():
        purchase = crud.create_purchase(
            db,
            user_id=current_user.id,
            product_id=product.id,
            price=product.price,
            product_name=product.name,
        )
        return purchase, crud.get_user_by_id(db, current_user.id).balance

    purchase, balance = await run_in_threadpool(record)
    return {
        "success": True,
        "message": "Product purchased successfully",
        "purchase": purchase,
        "balance": balance,
    }


@router.put("/purchases/{product_id}", response_model=PurchaseResponse)
def add_purchase(
    product_id: str,
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Buy one more unit at the price stored on the existing record."""
    purchase = crud.add_purchase(db, user_id=current_user.id, product_id=product_id)
    user = crud.get_user_by_id(db, current_user.id)
    return {
        "success": True,
        "message": "Purchase count incremented successfully",
        "purchase": purchase,
        "balance": user.balance,
    }


@router.delete("/purchases/{product_id}", response_model=RefundResponse)
def delete_purchase(
    product_id: str,
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    refund = crud.delete_purchase(db, user_id=current_user.id, product_id=product_id)
    user = crud.get_user_by_id(db, current_user.id)
    return {
        "success": True,
        "message": "Success Delete Product and Refund Processed",
        "refunded": refund,
        "balance": user.balance,
    }
