"""
Pydantic data models for product catalogs, stock ledgers and users
"""
import re
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from restock_agent.errors import ValidationError


# Canonical units of measure; synonyms such as "liter" are rejected
MEASURES = ("kg", "g", "l", "ml", "pcs", "box", "bag", "bottle", "can", "pack", "piece", "other")

Measure = Literal["kg", "g", "l", "ml", "pcs", "box", "bag", "bottle", "can", "pack", "piece", "other"]

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_quantity(value: Any) -> Decimal:
    """
    Exact decimal for a JSON number; bools, strings and non-finite values
    are refused
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValueError("must be a number")
    quantity = value if isinstance(value, Decimal) else Decimal(str(value))
    if not quantity.is_finite():
        raise ValueError("must be a finite number")
    return quantity


# Quantities are exact decimals; stored documents carry them as strings
PositiveQty = Annotated[Decimal, BeforeValidator(to_quantity), Field(gt=0)]


def parse_expiry_date(value: Any) -> date:
    """
    Accept a date or a YYYY-MM-DD string naming a real calendar day

    Raises:
        ValueError: for datetimes, other formats and impossible dates
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, str) and ISO_DATE_PATTERN.match(value.strip()):
        return date.fromisoformat(value.strip())
    raise ValueError("expiryDate must be a calendar date in YYYY-MM-DD form")


def describe_validation_error(exc: PydanticValidationError, index: Optional[int] = None) -> str:
    """Turn a pydantic error into one line naming the entry index and field"""
    parts = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "value"
        parts.append(f"{field}: {error['msg']}")
    detail = "; ".join(parts)
    if index is None:
        return detail
    return f"entry {index}: {detail}"


def validate_entries(entries: Any, spec_cls, what: str = "entries") -> list:
    """
    Validate a whole batch before anything is written

    Raises:
        ValidationError: batch is not a non-empty list, or an entry is
            invalid; the message names the first offending index and field
    """
    if not isinstance(entries, (list, tuple)):
        raise ValidationError(f"{what} must be a list")
    if not entries:
        raise ValidationError(f"{what} must not be empty")

    validated = []
    for index, entry in enumerate(entries):
        if isinstance(entry, spec_cls):
            validated.append(entry)
            continue
        if not isinstance(entry, dict):
            raise ValidationError(f"entry {index}: must be an object")
        try:
            validated.append(spec_cls.model_validate(entry))
        except PydanticValidationError as e:
            raise ValidationError(describe_validation_error(e, index))
    return validated


class CamelModel(BaseModel):
    """snake_case attributes, camelCase on the wire"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Input specs (direct API input and decoded AI payloads)
# ============================================================================

class ProductSpec(CamelModel):
    """A product definition before it is assigned an id"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field(..., min_length=1, description="Product description")
    measure: Measure = Field(..., description=f"Unit of measure, one of {', '.join(MEASURES)}")


class StockLotSpec(CamelModel):
    """A stock lot to add: expiry date and positive quantity"""

    expiry_date: date = Field(..., description="Expiry date (YYYY-MM-DD)")
    qty: PositiveQty = Field(..., description="Quantity added")

    @field_validator("expiry_date", mode="before")
    @classmethod
    def _check_expiry_date(cls, value):
        return parse_expiry_date(value)


# ============================================================================
# Persisted aggregates
# ============================================================================

class Product(ProductSpec):
    id: str = Field(default_factory=new_id)


class ProductCatalog(CamelModel):
    """All products of one user"""

    user_id: str
    products: List[Product] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class UsageEvent(CamelModel):
    used_qty: Decimal = Field(..., gt=0)
    timestamp: datetime = Field(default_factory=utc_now)


class StockLot(CamelModel):
    """One batch of stock with its own expiry and usage log"""

    id: str = Field(default_factory=new_id)
    expiry_date: date
    qty: Decimal = Field(..., ge=0)
    original_qty: Decimal = Field(..., gt=0)
    usage_events: List[UsageEvent] = Field(default_factory=list)

    @classmethod
    def from_spec(cls, spec: StockLotSpec) -> "StockLot":
        return cls(expiry_date=spec.expiry_date, qty=spec.qty, original_qty=spec.qty)

    @property
    def used_total(self) -> Decimal:
        return sum((event.used_qty for event in self.usage_events), Decimal(0))


class StockLedger(CamelModel):
    """All lots of one product for one user"""

    user_id: str
    product_id: str
    lots: List[StockLot] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def find_lot(self, lot_id: str) -> Optional[StockLot]:
        for lot in self.lots:
            if lot.id == lot_id:
                return lot
        return None


class ProductStock(CamelModel):
    """Ledger lots joined with the catalog entry for display"""

    product_id: str
    name: Optional[str] = None
    description: Optional[str] = None
    measure: Optional[str] = None
    lots: List[StockLot] = Field(default_factory=list)


# ============================================================================
# Users (auth collaborator)
# ============================================================================

class UserPublic(CamelModel):
    id: str
    email: str
    name: str
    created_at: datetime


class UserInDB(UserPublic):
    hashed_password: str

    def public(self) -> UserPublic:
        return UserPublic(**self.model_dump(exclude={"hashed_password"}))
