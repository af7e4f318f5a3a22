from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field
from decimal import Decimal
from datetime import datetime
from typing import Optional, List


# Envelope shared by every response
class Envelope(BaseModel):
    success: bool = True
    message: Optional[str] = None


# -----------------------------
# Users / sessions
# -----------------------------

class UserCreate(BaseModel):
    # the registration form posts capitalised keys
    name: str = Field(..., min_length=1, max_length=100, validation_alias=AliasChoices("name", "Name"))
    email: EmailStr = Field(..., validation_alias=AliasChoices("email", "Email"))
    age: Optional[int] = Field(None, ge=0, le=150, validation_alias=AliasChoices("age", "Age"))
    password: str = Field(..., min_length=6, max_length=72, validation_alias=AliasChoices("password", "Password"))


class LoginRequest(BaseModel):
    # normalised like UserCreate.email so lookups match the stored form
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserEdit(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    age: Optional[int] = None
    balance: Decimal

    model_config = ConfigDict(from_attributes=True)


class SessionUser(BaseModel):
    """Identity decoded from a verified session token.

    ``balance`` is the value at login time and may be stale.
    """
    id: int
    email: str
    name: str
    balance: Decimal


class UserResponse(Envelope):
    user: UserOut


class BalanceResponse(Envelope):
    balance: Decimal


class SessionResponse(Envelope):
    authenticated: bool = True
    user: SessionUser


# -----------------------------
# Catalogue
# -----------------------------

class Product(BaseModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    image: Optional[str] = None
    rating: Optional[float] = None
    reviews: int = 0
    country: Optional[str] = None


class ProductListResponse(Envelope):
    source: str = "api"
    count: int
    products: List[Product]


class ProductResponse(Envelope):
    product: Product


# -----------------------------
# Purchases
# -----------------------------

class PurchaseOut(BaseModel):
    id: int
    product_id: str
    product_name: Optional[str] = None
    price: Decimal
    count: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PurchaseListResponse(Envelope):
    count: int
    purchases: List[PurchaseOut]


class PurchaseResponse(Envelope):
    purchase: PurchaseOut
    balance: Decimal


class RefundResponse(Envelope):
    refunded: Decimal
    balance: Decimal


# -----------------------------
# Feedback
# -----------------------------

class ReportCreate(BaseModel):
    report: str = Field(..., min_length=1, max_length=2000)


class ReportOut(BaseModel):
    id: int
    message: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReportResponse(Envelope):
    report: ReportOut
