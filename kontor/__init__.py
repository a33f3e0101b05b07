"""Kontor: double-entry bookkeeping core for German small businesses."""

from kontor.accounting import AccountingEngine

__all__ = ["AccountingEngine"]
