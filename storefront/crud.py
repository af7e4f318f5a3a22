import logging
import os
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import Conflict, InsufficientBalance, NotFound, ValidationError
from .models import Purchase, Report, User
from .schemas import UserCreate

logger = logging.getLogger(__name__)

STARTING_BALANCE = Decimal(os.getenv("STARTING_BALANCE", "5000"))


# -----------------------------
# Users
# -----------------------------

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def create_user(db: Session, user: UserCreate) -> User:
    from .auth import get_password_hash

    if get_user_by_email(db, email=user.email):
        raise Conflict("This email is already registered. Please try logging in.")

    db_user = User(
        name=user.name,
        email=user.email,
        age=user.age,
        hashed_password=get_password_hash(user.password),
        balance=STARTING_BALANCE,
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        # unique email raced with another registration
        db.rollback()
        raise Conflict("This email is already registered. Please try logging in.")
    db.refresh(db_user)
    return db_user


def update_profile(db: Session, user_id: int, name: Optional[str] = None, email: Optional[str] = None) -> User:
    """Rename and/or re-email the caller.

    Blank values keep the current field. Taking an email that belongs to a
    different account is a conflict.
    """
    user = get_user_by_id(db, user_id)
    if user is None:
        raise NotFound("User not found")

    if email and email != user.email:
        owner = get_user_by_email(db, email=email)
        if owner is not None and owner.id != user.id:
            raise Conflict("This email is already used by another account")
        user.email = email

    if name is not None and name.strip():
        user.name = name.strip()

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("This email is already used by another account")
    db.refresh(user)
    return user


# -----------------------------
# Purchase ledger
# -----------------------------

def get_purchases_by_user(db: Session, user_id: int) -> List[Purchase]:
    return db.query(Purchase).filter(Purchase.user_id == user_id).order_by(Purchase.id).all()


def get_purchase(db: Session, user_id: int, product_id: str) -> Optional[Purchase]:
    return (
        db.query(Purchase)
        .filter(Purchase.user_id == user_id, Purchase.product_id == product_id)
        .first()
    )


def _debit(db: Session, user_id: int, amount: Decimal) -> None:
    # Conditional update: the balance check and the debit are one statement.
    result = db.execute(
        update(User)
        .where(User.id == user_id, User.balance >= amount)
        .values(balance=User.balance - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InsufficientBalance()


def add_purchase(db: Session, user_id: int, product_id: str) -> Purchase:
    """Buy one more unit of a product the user already holds a record for.

    Debits the snapshotted record price and increments the count in a single
    transaction.
    """
    user = get_user_by_id(db, user_id)
    purchase = get_purchase(db, user_id=user_id, product_id=product_id)
    if user is None or purchase is None:
        raise NotFound("User or product not found")

    price = Decimal(purchase.price)
    try:
        # purchase row first, then the user row: same lock order as delete_purchase
        result = db.execute(
            update(Purchase)
            .where(Purchase.id == purchase.id)
            .values(count=Purchase.count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # refunded by a concurrent request between the read and the update
            raise NotFound("Purchase not found")
        _debit(db, user_id, price)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(purchase)
    logger.info(f"User {user_id} bought product {product_id} for {price}, count={purchase.count}")
    return purchase


def create_purchase(
    db: Session,
    user_id: int,
    product_id: str,
    price: Decimal,
    product_name: Optional[str] = None,
) -> Purchase:
    """First purchase of a product: snapshot the price, count=1, debit once."""
    if price is None or price <= 0:
        raise ValidationError("This product has no valid price")
    if get_user_by_id(db, user_id) is None:
        raise NotFound("User not found")
    if get_purchase(db, user_id=user_id, product_id=product_id) is not None:
        raise Conflict("You already own this product. Use PUT to buy another one.")

    purchase = Purchase(
        user_id=user_id,
        product_id=product_id,
        product_name=product_name,
        price=price,
        count=1,
    )
    try:
        _debit(db, user_id, price)
        db.add(purchase)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("You already own this product. Use PUT to buy another one.")
    except Exception:
        db.rollback()
        raise

    db.refresh(purchase)
    logger.info(f"User {user_id} created purchase of product {product_id} at {price}")
    return purchase


def delete_purchase(db: Session, user_id: int, product_id: str) -> Decimal:
    """Remove the whole record and refund ``count * price``. Returns the refund."""
    purchase = (
        db.query(Purchase)
        .filter(Purchase.user_id == user_id, Purchase.product_id == product_id)
        .with_for_update()
        .first()
    )
    if purchase is None:
        raise NotFound("Product purchase record not found for this user.")

    refund = Decimal(purchase.price) * purchase.count
    try:
        deleted = (
            db.query(Purchase)
            .filter(Purchase.id == purchase.id)
            .delete(synchronize_session=False)
        )
        if not deleted:
            raise NotFound("Product purchase record not found for this user.")
        result = db.execute(
            update(User)
            .where(User.id == user_id)
            .values(balance=User.balance + refund)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFound("User not found")
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"User {user_id} refunded {refund} for product {product_id}")
    return refund


# -----------------------------
# Feedback reports
# -----------------------------

def create_report(db: Session, user_id: int, message: str) -> Report:
    report = Report(user_id=user_id, message=message)
    db.add(report)
    db.commit()
    db.refresh(report)
    return report
