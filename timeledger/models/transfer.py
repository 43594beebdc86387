"""
Core Data Models for Transfer Entry

These models define the schemas for a transfer between two accounts:
1. The accounts taking part (and whether they may take part at all)
2. The live editing state of the transfer form (TransferState)
3. What gets handed to the ledger on save (TransferCommit)
4. What the ledger hands back and later rehydrates from (TransferRecord)

DESIGN DECISION: The whole editing session lives in ONE aggregate,
TransferState. The resolver is the only thing that mutates it, so the
invariants between the two legs are checked in one place instead of
at every call site.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountCategory(str, Enum):
    """
    Kind of account.

    DEBT accounts track money owed to/by a person. They can only be
    settled, never used as either side of a transfer.
    """
    FUNDS = "funds"
    CREDIT = "credit"
    DEBT = "debt"


class LegSide(str, Enum):
    """Which side of a transfer a leg is on."""
    SOURCE = "source"  # money leaving
    TARGET = "target"  # money arriving

    @property
    def other(self) -> "LegSide":
        return LegSide.TARGET if self is LegSide.SOURCE else LegSide.SOURCE


class FocusField(str, Enum):
    """Input field currently receiving keypad input."""
    SOURCE = "source"
    TARGET = "target"
    FEE = "fee"


class AnchorMode(str, Enum):
    """
    Which leg the user is driving.

    The other leg is derived from it (plus or minus the fee).
    """
    SOURCE_FIXED = "source_fixed"  # type the outgoing amount, incoming is derived
    TARGET_FIXED = "target_fixed"  # type the incoming amount, outgoing is derived


# =============================================================================
# ACCOUNTS
# =============================================================================

class Account(BaseModel):
    """An account that can be picked for one leg of a transfer."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: int = Field(
        ...,
        description="Stable account identity"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    currency: str = Field(
        ...,
        description="ISO 4217 currency code"
    )
    category: AccountCategory = Field(
        default=AccountCategory.FUNDS,
        description="Account category"
    )

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Currency codes are stored upper-case."""
        code = v.strip().upper()
        if len(code) != 3 or not code.isascii() or not code.isalpha():
            raise ValueError(f"Invalid currency code: {v!r}")
        return code

    @property
    def is_transferable(self) -> bool:
        return self.category != AccountCategory.DEBT


# =============================================================================
# EDITING STATE
# =============================================================================

class Leg(BaseModel):
    """
    One side of a transfer.

    `buffer` is exactly what the user sees and types into; it may hold an
    unfinished expression such as "120 + ". `value` is the buffer's
    evaluated amount and is refreshed by the resolver after every event.
    """

    account: Optional[Account] = None
    buffer: str = "0"
    value: Decimal = Decimal("0")

    @property
    def currency(self) -> str:
        return self.account.currency if self.account else ""


class TransferState(BaseModel):
    """
    The complete state of one open transfer form.

    The fee is always denominated in the source leg's currency.
    """

    source: Leg = Field(default_factory=Leg)
    target: Leg = Field(default_factory=Leg)
    fee_buffer: str = "0"
    fee: Decimal = Decimal("0")

    anchor_mode: AnchorMode = AnchorMode.SOURCE_FIXED
    manual_override: bool = False
    focused_field: FocusField = FocusField.SOURCE
    overwrite_on_next_input: bool = True

    def leg(self, side: LegSide) -> Leg:
        return self.source if side is LegSide.SOURCE else self.target

    def buffer_for(self, field: FocusField) -> str:
        if field is FocusField.FEE:
            return self.fee_buffer
        return self.leg(LegSide(field.value)).buffer

    def set_buffer(self, field: FocusField, text: str) -> None:
        if field is FocusField.FEE:
            self.fee_buffer = text
        else:
            self.leg(LegSide(field.value)).buffer = text

    def currency_for(self, field: FocusField) -> str:
        """Currency governing a field's precision (fee follows the source)."""
        if field is FocusField.TARGET:
            return self.target.currency
        return self.source.currency

    @property
    def both_selected(self) -> bool:
        return self.source.account is not None and self.target.account is not None

    @property
    def same_currency(self) -> bool:
        return self.both_selected and self.source.currency == self.target.currency

    @property
    def currencies_differ(self) -> bool:
        return self.both_selected and self.source.currency != self.target.currency


# =============================================================================
# LEDGER MODELS
# =============================================================================

class TransferCommit(BaseModel):
    """
    A finished transfer, ready to hand to the ledger.

    CRITICAL: Only the resolver builds these, and only once its
    save-time guard passes. The validators below repeat that guard
    so a hand-built commit cannot slip an invalid pair through.
    """

    source_account_id: int
    target_account_id: int
    source_currency: str
    target_currency: str
    source_amount: Decimal = Field(..., gt=0)
    target_amount: Decimal = Field(..., gt=0)
    fee: Decimal = Field(default=Decimal("0"), ge=0)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    note: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="User note attached to both ledger entries"
    )

    @model_validator(mode='after')
    def validate_accounts(self) -> 'TransferCommit':
        if self.source_account_id == self.target_account_id:
            raise ValueError("Source and target accounts must differ")
        return self


class LedgerEntry(BaseModel):
    """One signed movement on one account."""

    entry_id: UUID = Field(default_factory=uuid4)
    account_id: int
    amount: Decimal = Field(
        ...,
        description="Signed amount: negative leaves the account, positive arrives"
    )
    currency: str
    category: str = Field(
        ...,
        pattern="^(transfer_out|transfer_in)$"
    )
    timestamp: datetime
    note: Optional[str] = None


class TransferRecord(BaseModel):
    """
    A transfer as the ledger stores it.

    `fee` is optional: older records only kept the two amounts,
    and the fee is inferred when such a record is reopened.
    """

    record_id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    source_account_id: int
    target_account_id: int
    source_currency: str
    target_currency: str
    source_amount: Decimal = Field(..., ge=0)
    target_amount: Decimal = Field(..., ge=0)
    fee: Optional[Decimal] = Field(default=None, ge=0)
    timestamp: datetime
    note: Optional[str] = None

    entries: list[LedgerEntry] = Field(default_factory=list)

    @classmethod
    def from_commit(
        cls,
        commit: TransferCommit,
        record_id: Optional[UUID] = None,
    ) -> "TransferRecord":
        """Build the stored record, including its out/in ledger entries."""
        entries = [
            LedgerEntry(
                account_id=commit.source_account_id,
                amount=-abs(commit.source_amount),
                currency=commit.source_currency,
                category="transfer_out",
                timestamp=commit.timestamp,
                note=commit.note,
            ),
            LedgerEntry(
                account_id=commit.target_account_id,
                amount=abs(commit.target_amount),
                currency=commit.target_currency,
                category="transfer_in",
                timestamp=commit.timestamp,
                note=commit.note,
            ),
        ]
        return cls(
            record_id=record_id or uuid4(),
            source_account_id=commit.source_account_id,
            target_account_id=commit.target_account_id,
            source_currency=commit.source_currency,
            target_currency=commit.target_currency,
            source_amount=commit.source_amount,
            target_amount=commit.target_amount,
            fee=commit.fee,
            timestamp=commit.timestamp,
            note=commit.note,
            entries=entries,
        )
