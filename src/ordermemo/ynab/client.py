#!/usr/bin/env python3
"""
YNAB API Client

Thin wrapper over the YNAB REST API covering the three calls ordermemo
needs: list budgets, delta-sync transactions, and patch transaction memos.
"""

import logging
from typing import Any

import requests

from ..core.config import ConfigurationError
from ..core.dates import FinancialDate
from .models import TransactionUpdate, YnabBudget, YnabTransaction

logger = logging.getLogger(__name__)


class YnabApiError(RuntimeError):
    """A YNAB request failed at the network or HTTP level."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def extract_ynab_error(response: requests.Response) -> str:
    """Extract error detail from YNAB API response."""
    try:
        return response.json().get("error", {}).get("detail", response.text)
    except ValueError:
        return response.text


class YnabClient:
    """Client for YNAB API operations"""

    def __init__(self, api_token: str, base_url: str = "https://api.ynab.com/v1", timeout: int = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
            }
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise YnabApiError(f"YNAB request {method} {path} failed: {e}") from e

        if not response.ok:
            detail = extract_ynab_error(response)
            raise YnabApiError(
                f"YNAB request {method} {path} failed ({response.status_code}): {detail}",
                status_code=response.status_code,
            )

        data: dict[str, Any] = response.json().get("data", {})
        return data

    def get_budgets(self) -> list[YnabBudget]:
        """Fetch the budgets visible to the token."""
        data = self._request("GET", "/budgets")
        return [YnabBudget.from_dict(b) for b in data.get("budgets", [])]

    def get_transactions(
        self,
        budget_id: str,
        since_date: FinancialDate | None = None,
        last_knowledge: int | None = None,
    ) -> tuple[list[YnabTransaction], int | None]:
        """
        Fetch transactions, optionally only those changed since last_knowledge.

        Args:
            budget_id: Budget to read from
            since_date: Only include transactions on or after this date
            last_knowledge: Server knowledge returned by the previous call

        Returns:
            Tuple of (transactions, new server knowledge)
        """
        params: dict[str, Any] = {}
        if since_date is not None:
            params["since_date"] = since_date.to_iso_string()
        if last_knowledge is not None:
            params["last_knowledge_of_server"] = last_knowledge

        data = self._request("GET", f"/budgets/{budget_id}/transactions", params=params)
        transactions = [YnabTransaction.from_dict(t) for t in data.get("transactions", [])]
        return transactions, data.get("server_knowledge")

    def update_transactions(self, budget_id: str, updates: list[TransactionUpdate]) -> list[str]:
        """
        Patch a batch of transactions.

        Returns:
            IDs of the transactions YNAB reports as updated
        """
        if not updates:
            return []

        payload = {"transactions": [u.to_dict() for u in updates]}
        data = self._request("PATCH", f"/budgets/{budget_id}/transactions", json=payload)
        updated_ids: list[str] = data.get("transaction_ids", [u.id for u in updates])
        return updated_ids


def resolve_budget(client: YnabClient, budget_id: str | None) -> YnabBudget:
    """
    Find the configured budget among those visible to the token.

    Raises:
        ConfigurationError: If no budget ID is configured or it does not exist
        YnabApiError: If the budget list cannot be fetched
    """
    if not budget_id:
        raise ConfigurationError("YNAB_BUDGET_ID is not set")

    logger.info("Connecting to YNAB...")
    for budget in client.get_budgets():
        if budget.id == budget_id:
            logger.info(f"Using YNAB budget {budget.name!r}")
            return budget

    raise ConfigurationError(
        "Invalid budget ID provided. You can find the budget ID in the URL of your budget page."
    )
