"""Quotes (Angebote)."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import ClassVar, Dict, Optional, Tuple

from kontor.documents.base import SalesDocument

QUOTE_TRANSITIONS: Dict[Tuple[str, str], str] = {
    ("draft", "send"): "sent",
    ("sent", "accept"): "accepted",
    ("sent", "reject"): "rejected",
    ("sent", "expire"): "expired",
    ("accepted", "expire"): "expired",
    ("accepted", "create_order"): "ordered",
}


@dataclass
class Quote(SalesDocument):
    document_type: ClassVar[str] = "quote"
    transitions: ClassVar[Dict[Tuple[str, str], str]] = QUOTE_TRANSITIONS

    valid_until: Optional[date] = None
    order_id: Optional[str] = None

    def is_expired(self, today: date) -> bool:
        return self.valid_until is not None and self.valid_until < today and self.can("expire")


__all__ = ["QUOTE_TRANSITIONS", "Quote"]
