"""Snapshot validation package."""

from finance_ledger.validation.integrity import SnapshotValidator

__all__ = ["SnapshotValidator"]
