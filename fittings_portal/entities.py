"""Entity models shared by the caches, the stores and the API."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class QuotationStatus(str, Enum):
    PENDING = "pending"
    QUOTED = "quoted"
    COMPLETED = "completed"
    CLOSED = "closed"


# Quotations only ever move forward.
ALLOWED_STATUS_TRANSITIONS = {
    QuotationStatus.PENDING: {QuotationStatus.QUOTED, QuotationStatus.CLOSED},
    QuotationStatus.QUOTED: {QuotationStatus.COMPLETED, QuotationStatus.CLOSED},
    QuotationStatus.COMPLETED: {QuotationStatus.CLOSED},
    QuotationStatus.CLOSED: set(),
}


class Entity(BaseModel):
    """Base for every stored record: opaque id plus timestamps."""

    # Remote rows may carry columns (joins, legacy fields) we do not model.
    model_config = ConfigDict(extra="ignore")

    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return v if v is None else str(v)

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def _aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes (SQLite drops the offset) are taken as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Product(Entity):
    name: str
    category: str
    price: Union[float, str] = "Contact for Quote"
    image: str = "/placeholder.svg?height=300&width=300"
    description: str = ""
    specifications: List[str] = Field(default_factory=list)
    status: ProductStatus = ProductStatus.ACTIVE
    featured: bool = False


class Category(Entity):
    name: str
    description: Optional[str] = None


class QuoteItem(BaseModel):
    product: str
    quantity: int = Field(default=1, ge=1)
    specifications: str = ""


class QuotationRequest(Entity):
    customer_name: str
    email: str
    phone: str = ""
    company: Optional[str] = None
    items: List[QuoteItem] = Field(default_factory=list)
    project_details: Optional[str] = None
    status: QuotationStatus = QuotationStatus.PENDING


class FollowUp(Entity):
    quotation_id: str
    message: str
    follow_up_date: datetime
    completed: bool = False

    @field_validator("follow_up_date", mode="after")
    @classmethod
    def _due_aware(cls, v: datetime) -> datetime:
        return as_utc(v)

    @field_validator("quotation_id", mode="before")
    @classmethod
    def _quotation_id_as_str(cls, v):
        return v if v is None else str(v)


class Visitor(Entity):
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None


class VisitorSession(Entity):
    customer_id: str
    session_id: Optional[str] = None
    page_visited: Optional[str] = None
    referrer: Optional[str] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None

    @field_validator("customer_id", mode="before")
    @classmethod
    def _customer_id_as_str(cls, v):
        return v if v is None else str(v)


class AdminUser(Entity):
    username: str
    email: str = ""
    full_name: str = ""
    role: str = "admin"
    is_active: bool = True
    last_login: Optional[datetime] = None
    password_hash: Optional[str] = None

    @field_validator("last_login", mode="after")
    @classmethod
    def _login_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    def public(self) -> dict:
        return self.model_dump(mode="json", exclude={"password_hash"})


class VisitorWithSessions(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None
    sessions: List[VisitorSession] = Field(default_factory=list)
    total_visits: int = 0
    last_visit: Optional[datetime] = None
