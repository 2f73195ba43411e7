"""
Sync Package

Orchestration of mail scanning, YNAB transaction sync and memo updates.
"""

from .service import OrderSyncService

__all__ = ["OrderSyncService"]
