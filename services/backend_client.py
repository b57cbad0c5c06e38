# services/backend_client.py
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol

import httpx

from configurations.config import CORE_API_BASE_URL, CORE_API_TIMEOUT
from core.errors import BackendCallFailure
from core.log_format import get_logger
from models.backend import BackendResponse

logger = get_logger("backend_client")

DEFAULT_RULE_TYPE = "CategoryBudget"
DEFAULT_SOURCE = "chat"

UNAVAILABLE_MESSAGE = "El servicio financiero no está disponible en este momento."


def to_utc_bound(date: Optional[str], start_of_day: bool) -> Optional[str]:
    """'2025-11-15' -> '2025-11-15T00:00:00Z' (or T23:59:59Z for the end bound)."""
    if not date:
        return date
    if "T" in date:
        return date if date.endswith("Z") else date + "Z"
    return date + ("T00:00:00Z" if start_of_day else "T23:59:59Z")


class FinancialBackend(Protocol):
    """Everything the executors may ask of the financial core API."""

    async def create_transaction(
        self, user_id: str, amount: Decimal, type: str, category: str,
        description: str, source: str = DEFAULT_SOURCE,
    ) -> BackendResponse: ...

    async def get_transactions(self, user_id: str, type: Optional[str] = None) -> BackendResponse: ...

    async def get_transactions_by_date(self, user_id: str, date: str) -> BackendResponse: ...

    async def get_transactions_by_range(
        self, user_id: str, start_date: str, end_date: str, type: Optional[str] = None
    ) -> BackendResponse: ...

    async def search_transactions(self, user_id: str, query: str) -> BackendResponse: ...

    async def delete_transaction(self, transaction_id: str) -> BackendResponse: ...

    async def get_summary_by_category(
        self, user_id: str, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> BackendResponse: ...

    async def get_balance(self, user_id: str) -> BackendResponse: ...

    async def create_rule(
        self, user_id: str, category: str, amount_limit: Decimal, period: str,
        rule_type: str = DEFAULT_RULE_TYPE,
    ) -> BackendResponse: ...

    async def update_rule(self, rule_id: str, amount_limit: Decimal) -> BackendResponse: ...

    async def get_rules(self, user_id: str) -> BackendResponse: ...

    async def create_recurring(
        self, user_id: str, amount: Decimal, type: str, category: Optional[str],
        description: Optional[str], frequency: str, day_of_month: Optional[int],
    ) -> BackendResponse: ...

    async def get_recurring(self, user_id: str) -> BackendResponse: ...

    async def delete_recurring(self, recurring_id: str) -> BackendResponse: ...

    async def get_cashflow(self, user_id: str) -> BackendResponse: ...


class HttpFinancialBackend:
    """
    REST client for the financial core API.

    Transport failures and non-2xx answers never escape: they come back
    as a failed BackendResponse with a user-safe `error` and the raw
    cause in `detail`.
    """

    def __init__(
        self,
        base_url: str = CORE_API_BASE_URL,
        timeout: float = CORE_API_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # -----------------------------
    # Transport
    # -----------------------------
    async def _send(
        self,
        operation: str,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> BackendResponse:
        params = {k: v for k, v in (params or {}).items() if v is not None}
        logger.debug(f"📤 [BACKEND] {method} {path} params={params}")

        try:
            resp = await self._client.request(method, path, params=params or None, json=json)
        except httpx.HTTPError as e:
            raise BackendCallFailure(operation, f"{type(e).__name__}: {e}") from e

        if resp.status_code >= 400:
            raise BackendCallFailure(
                operation, resp.text[:300], status_code=resp.status_code
            )

        if not resp.content:
            return BackendResponse.ok()
        try:
            body = resp.json()
        except ValueError as e:
            raise BackendCallFailure(operation, f"invalid JSON body: {e}") from e
        return BackendResponse.ok(body)

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> BackendResponse:
        try:
            return await self._send(operation, method, path, **kwargs)
        except BackendCallFailure as e:
            logger.error(
                f"❌ [BACKEND] {operation} failed, status={e.status_code}, detail={e.detail}"
            )
            if e.status_code is not None:
                error = f"El servicio respondió con un error ({e.status_code})."
            else:
                error = UNAVAILABLE_MESSAGE
            return BackendResponse.fail(error, detail=e.detail)

    # -----------------------------
    # Transactions
    # -----------------------------
    async def create_transaction(
        self, user_id, amount, type, category, description, source=DEFAULT_SOURCE
    ) -> BackendResponse:
        body = {
            "userId": user_id,
            "amount": float(amount),
            "type": type,
            "category": category,
            "description": description or category,
            "source": source,
        }
        return await self._request("create_transaction", "POST", "/api/Transaction", json=body)

    async def get_transactions(self, user_id, type=None) -> BackendResponse:
        return await self._request(
            "get_transactions", "GET", f"/api/Transaction/user/{user_id}",
            params={"type": type},
        )

    async def get_transactions_by_date(self, user_id, date) -> BackendResponse:
        utc_date = to_utc_bound(date, start_of_day=True)
        return await self._request(
            "get_transactions_by_date", "GET",
            f"/api/Transaction/user/{user_id}/date/{utc_date}",
        )

    async def get_transactions_by_range(self, user_id, start_date, end_date, type=None) -> BackendResponse:
        return await self._request(
            "get_transactions_by_range", "GET",
            f"/api/Transaction/user/{user_id}/range",
            params={
                "startDate": to_utc_bound(start_date, start_of_day=True),
                "endDate": to_utc_bound(end_date, start_of_day=False),
                "type": type,
            },
        )

    async def search_transactions(self, user_id, query) -> BackendResponse:
        return await self._request(
            "search_transactions", "GET",
            f"/api/Transaction/user/{user_id}/search",
            params={"query": query},
        )

    async def delete_transaction(self, transaction_id) -> BackendResponse:
        return await self._request(
            "delete_transaction", "DELETE", f"/api/Transaction/{transaction_id}"
        )

    async def get_summary_by_category(self, user_id, start_date=None, end_date=None) -> BackendResponse:
        params = {}
        if start_date and end_date:
            params = {
                "startDate": to_utc_bound(start_date, start_of_day=True),
                "endDate": to_utc_bound(end_date, start_of_day=False),
            }
        return await self._request(
            "get_summary_by_category", "GET",
            f"/api/Transaction/user/{user_id}/summary/category",
            params=params,
        )

    # -----------------------------
    # Users
    # -----------------------------
    async def get_balance(self, user_id) -> BackendResponse:
        return await self._request("get_balance", "GET", f"/api/User/{user_id}/balance")

    # -----------------------------
    # Rules
    # -----------------------------
    async def create_rule(self, user_id, category, amount_limit, period, rule_type=DEFAULT_RULE_TYPE) -> BackendResponse:
        body = {
            "userId": user_id,
            "type": rule_type,
            "category": category,
            "amountLimit": float(amount_limit),
            "period": period,
        }
        return await self._request("create_rule", "POST", "/api/FinancialRule", json=body)

    async def update_rule(self, rule_id, amount_limit) -> BackendResponse:
        return await self._request(
            "update_rule", "PUT", f"/api/FinancialRule/{rule_id}",
            json={"amountLimit": float(amount_limit)},
        )

    async def get_rules(self, user_id) -> BackendResponse:
        return await self._request("get_rules", "GET", f"/api/FinancialRule/user/{user_id}")

    # -----------------------------
    # Recurring transactions
    # -----------------------------
    async def create_recurring(
        self, user_id, amount, type, category, description, frequency, day_of_month
    ) -> BackendResponse:
        body = {
            "userId": user_id,
            "amount": float(amount),
            "type": type,
            "category": category,
            "description": description,
            "frequency": frequency,
            "dayOfMonth": day_of_month,
        }
        return await self._request(
            "create_recurring", "POST", "/api/RecurringTransaction", json=body
        )

    async def get_recurring(self, user_id) -> BackendResponse:
        return await self._request(
            "get_recurring", "GET", f"/api/RecurringTransaction/user/{user_id}"
        )

    async def delete_recurring(self, recurring_id) -> BackendResponse:
        return await self._request(
            "delete_recurring", "DELETE", f"/api/RecurringTransaction/{recurring_id}"
        )

    async def get_cashflow(self, user_id) -> BackendResponse:
        return await self._request(
            "get_cashflow", "GET", f"/api/RecurringTransaction/user/{user_id}/cashflow"
        )
