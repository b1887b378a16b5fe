from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TillStatus = Literal["open", "closed"]
SyncStatus = Literal["pending", "synced", "failed"]
CashCounts = dict[str, int]


class TillSession(BaseModel):
    """One cashier shift's cash-drawer accounting period."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    pos_id: str
    branch_id: str
    user_id: str
    status: TillStatus
    opening_amount: Decimal = Field(ge=0)
    opening_cash_counts: CashCounts | None = None
    opening_notes: str | None = None
    opened_at: datetime
    declared_closing_amount: Decimal | None = None
    system_closing_amount: Decimal | None = None
    closing_cash_counts: CashCounts | None = None
    closing_notes: str | None = None
    closed_at: datetime | None = None
    sync_status: SyncStatus
    synced_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_open(self) -> bool:
        return self.status == "open"


class CashOrder(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    till_session_id: str | None = Field(default=None, alias="tillSessionId")
    payment_status: str | None = Field(default=None, alias="paymentStatus")
    payment_method: str | None = Field(default=None, alias="paymentMethod")
    sync_status: str | None = Field(default=None, alias="syncStatus")
    total: Decimal | None = None
    total_price: Decimal | None = Field(default=None, alias="totalPrice")

    @property
    def amount(self) -> Decimal:
        return self.total or self.total_price or Decimal("0")


class UserContext(BaseModel):
    """Authenticated cashier on a specific POS terminal."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    pos_id: str = Field(alias="posId")
    branch_id: str = Field(alias="branchId")


class OpenTillRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    branch_id: str | None = Field(default=None, alias="branchId")
    pos_id: str | None = Field(default=None, alias="posId")
    opening_amount: Decimal | None = Field(default=None, alias="openingAmount")
    cash_counts: CashCounts | None = Field(default=None, alias="cashCounts")
    notes: str | None = None


class OpenTillResult(BaseModel):
    success: bool
    till_session_id: str | None = None
    error: str | None = None
    message: str | None = None


class CloseTillRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    branch_id: str | None = Field(default=None, alias="branchId")
    pos_id: str | None = Field(default=None, alias="posId")
    till_session_id: str | None = Field(default=None, alias="tillSessionId")
    declared_closing_amount: Decimal | None = Field(default=None, alias="declaredClosingAmount")
    system_closing_amount: Decimal | None = Field(default=None, alias="systemClosingAmount")
    cash_counts: CashCounts | None = Field(default=None, alias="cashCounts")
    notes: str | None = None


class CloseTillResult(BaseModel):
    success: bool
    token: str | None = None
    error: str | None = None
    message: str | None = None


class BackendTillSession(BaseModel):
    till_session_id: str
    opening_amount: Decimal = Field(ge=0)
    opening_cash_counts: CashCounts | None = None
    opening_notes: str | None = None
    opened_at: datetime


class TillSessionLookup(BaseModel):
    success: bool
    session: BackendTillSession | None = None
    error: str | None = None


class ActiveTillCheck(BaseModel):
    success: bool
    has_active_till: bool = False
    error: str | None = None


class SessionData(BaseModel):
    access_token: str
    user: UserContext | None = None
    env_name: str | None = None
