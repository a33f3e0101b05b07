"""Pydantic schemas for the boundary of the bookkeeping core.

Amounts cross every boundary as integer minor units; rates and quantities as
decimals.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kontor.accounting.quick_entry import QuickEntryIntent
from kontor.documents.base import DocumentLine
from kontor.models import JournalEntry, JournalLine
from kontor.money import VatComputation

AccountType = Literal["asset", "liability", "equity", "revenue", "expense"]
Side = Literal["debit", "credit"]
EntryStatus = Literal["draft", "posted", "cancelled"]


class AccountModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique account identifier")
    code: str = Field(..., description="Chart of accounts code, e.g. 1776")
    name: str
    type: AccountType


class VatRequest(BaseModel):
    gross_amount: int = Field(..., ge=0, description="Gross amount in minor units")
    rate: Decimal = Field(default=Decimal("19"), ge=0, lt=100)


class VatResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    gross: int
    net: int
    tax: int

    @classmethod
    def from_computation(cls, computation: VatComputation) -> "VatResponse":
        return cls.model_validate(computation)


class JournalLineModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    account_id: str
    side: Side
    amount: int = Field(..., gt=0)
    memo: Optional[str] = None

    def to_domain(self) -> JournalLine:
        return JournalLine(account_id=self.account_id, side=self.side, amount=self.amount, memo=self.memo)


class JournalEntryCreate(BaseModel):
    description: str
    entry_date: date
    lines: List[JournalLineModel] = Field(..., min_length=2)
    contact_id: Optional[str] = None
    source_document_ref: Optional[str] = None

    def to_domain(self) -> JournalEntry:
        return JournalEntry(
            description=self.description,
            entry_date=self.entry_date,
            lines=tuple(line.to_domain() for line in self.lines),
            contact_id=self.contact_id,
            source_document_ref=self.source_document_ref,
        )


class JournalEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    description: str
    entry_date: date
    lines: List[JournalLineModel]
    status: EntryStatus
    contact_id: Optional[str] = None
    source_document_ref: Optional[str] = None
    locked_at: Optional[datetime] = None
    reversal_of: Optional[str] = None
    debit_total: int
    credit_total: int


class QuickEntryRequest(BaseModel):
    contact_id: Optional[str] = None
    contra_account_id: Optional[str] = None
    gross_amount: Optional[int] = None
    vat_rate: Decimal = Field(default=Decimal("19"), ge=0, lt=100)
    is_paid: bool = False
    payment_account_id: Optional[str] = None
    entry_date: date = Field(default_factory=date.today)
    description: str = ""

    @field_validator("vat_rate", mode="before")
    @classmethod
    def _normalize_rate(cls, value: Decimal | float | int | str) -> Decimal:
        return Decimal(str(value))

    def to_intent(self) -> QuickEntryIntent:
        return QuickEntryIntent(**self.model_dump())


class DocumentLineModel(BaseModel):
    description: str
    quantity: Decimal = Field(..., ge=0)
    unit: Optional[str] = None
    unit_price: int = Field(..., ge=0, description="Net unit price in minor units")
    tax_rate: Decimal = Field(default=Decimal("19"), ge=0, lt=100)
    account_id: Optional[str] = None

    def to_domain(self) -> DocumentLine:
        return DocumentLine(**self.model_dump())


__all__ = [
    "AccountModel",
    "DocumentLineModel",
    "JournalEntryCreate",
    "JournalEntryResponse",
    "JournalLineModel",
    "QuickEntryRequest",
    "VatRequest",
    "VatResponse",
]
