"""
Record types for the marketplace collections

Request bodies are validated against the ``*Create``/``*Update`` models before
anything is written; the stored documents are built from the record models so
every collection keeps one explicit shape. Field names match the camelCase
documents the front-end already reads.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AfterValidator, AliasChoices, BaseModel, Field

from .helpers import utcnow, validate_email

ORDER_STATUSES = ('pending', 'accepted', 'cancelled', 'delivered')


def _email(value):
    value = (value or '').strip().lower()
    if not validate_email(value):
        raise ValueError('Please provide a valid email')
    return value


Email = Annotated[str, AfterValidator(_email)]


# ==================== IDENTITY ====================

class UserCreate(BaseModel):
    name: Optional[str] = None
    email: Email
    photoURL: Optional[str] = None
    address: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    photoURL: Optional[str] = None
    address: Optional[str] = None


class Identity(BaseModel):
    name: Optional[str] = None
    email: Email
    password: Optional[str] = None
    photoURL: Optional[str] = None
    address: Optional[str] = None
    role: Literal['user', 'chef', 'admin'] = 'user'
    status: Literal['active', 'fraud'] = 'active'
    createdAt: datetime = Field(default_factory=utcnow)


class UserStatusUpdate(BaseModel):
    status: Literal['active', 'fraud']


class RoleRequestCreate(BaseModel):
    email: Email
    requestedRole: Literal['chef', 'admin']


class SessionRequest(BaseModel):
    email: Email


# ==================== CATALOG ====================

class MealCreate(BaseModel):
    name: str = Field(min_length=1)
    price: float = Field(ge=0, allow_inf_nan=False)
    rating: float = Field(0, ge=0, le=5)
    status: str = 'Available'
    image: Optional[str] = None
    category: Optional[str] = None
    ingredients: List[str] = []
    description: Optional[str] = None
    chefName: Optional[str] = None
    chefLocation: Optional[str] = None
    estimatedDeliveryTime: Optional[float] = Field(None, ge=0)


class MealUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    rating: Optional[float] = Field(None, ge=0, le=5)
    status: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None
    ingredients: Optional[List[str]] = None
    description: Optional[str] = None
    chefName: Optional[str] = None
    chefLocation: Optional[str] = None
    estimatedDeliveryTime: Optional[float] = Field(None, ge=0)


# ==================== FEEDBACK ====================

class ReviewCreate(BaseModel):
    foodId: str = Field(min_length=1)
    rating: float = Field(ge=1, le=5)
    comment: str = Field(min_length=1)
    reviewerName: str = 'Anonymous'
    reviewerImage: str = ''


class ReviewUpdate(BaseModel):
    rating: float = Field(ge=1, le=5)
    comment: str = Field(min_length=1)


class FavoriteCreate(BaseModel):
    mealId: str = Field(min_length=1)
    mealName: str = Field(min_length=1)
    chefId: str = ''
    chefName: str = ''
    price: Any = ''


# ==================== ORDERS & PAYMENTS ====================

class OrderCreate(BaseModel):
    foodId: Optional[str] = Field(None, validation_alias=AliasChoices('foodId', 'mealId'))
    mealName: Optional[str] = None
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    quantity: int = Field(1, ge=1)
    chefId: Optional[str] = None
    chefName: Optional[str] = None
    userEmail: Optional[str] = None
    userAddress: Optional[str] = None
    totalPrice: Optional[float] = Field(None, ge=0, allow_inf_nan=False)


class Order(BaseModel):
    userEmail: str
    chefId: Optional[str] = None
    foodId: Optional[str] = None
    mealName: Optional[str] = None
    price: Optional[float] = None
    quantity: int = 1
    chefName: Optional[str] = None
    userAddress: Optional[str] = None
    totalPrice: float = Field(ge=0, allow_inf_nan=False)
    orderStatus: Literal['pending', 'accepted', 'cancelled', 'delivered'] = 'pending'
    paymentStatus: Literal['pending', 'paid'] = 'pending'
    orderTime: datetime = Field(default_factory=utcnow)


class OrderStatusUpdate(BaseModel):
    orderStatus: Optional[str] = None


class CheckoutRequest(BaseModel):
    orderId: str = Field(min_length=1)


class ManualPayment(BaseModel):
    paymentInfo: Optional[Dict[str, Any]] = None


class PaymentRecord(BaseModel):
    orderId: str
    userEmail: str
    transactionId: str
    amount: float
    createdAt: datetime = Field(default_factory=utcnow)
