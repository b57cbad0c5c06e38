# services/mock_backend.py
import uuid
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from core.clock import Clock, utc_now
from core.log_format import get_logger
from models.backend import BackendResponse
from services.backend_client import DEFAULT_RULE_TYPE, DEFAULT_SOURCE

logger = get_logger("mock_backend")

_MONTHLY_FACTOR = {
    "daily": 30.0,
    "weekly": 4.0,
    "biweekly": 2.0,
    "monthly": 1.0,
    "yearly": 1 / 12,
}


class InMemoryFinancialBackend:
    """
    Stand-in for the financial core API (USE_MOCK_BACKEND=true, demos, tests).

    Every call is appended to `calls` as (operation, arguments) so callers
    can assert exactly what was, or was not, sent to the backend.
    `fail_on(operation, error)` makes the next call to that operation fail.
    """

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.transactions: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.rules: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.recurring: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self._failures: Dict[str, str] = {}

    # -----------------------------
    # Test hooks
    # -----------------------------
    def fail_on(self, operation: str, error: str = "Servicio no disponible") -> None:
        self._failures[operation] = error

    def operations(self) -> List[str]:
        return [name for name, _ in self.calls]

    def _record(self, operation: str, **arguments) -> Optional[BackendResponse]:
        self.calls.append((operation, arguments))
        error = self._failures.pop(operation, None)
        if error is not None:
            logger.warning(f"🧪 [MOCK] {operation} forced failure: {error}")
            return BackendResponse.fail(error, detail=f"forced failure on {operation}")
        return None

    def _now_iso(self) -> str:
        return self._clock().strftime("%Y-%m-%dT%H:%M:%SZ")

    # -----------------------------
    # Transactions
    # -----------------------------
    async def create_transaction(
        self, user_id, amount, type, category, description, source=DEFAULT_SOURCE
    ) -> BackendResponse:
        failed = self._record(
            "create_transaction", user_id=user_id, amount=amount, type=type,
            category=category, description=description, source=source,
        )
        if failed:
            return failed

        record = {
            "id": uuid.uuid4().hex,
            "userId": user_id,
            "amount": float(amount),
            "type": type,
            "category": category,
            "description": description or category,
            "source": source,
            "createdAt": self._now_iso(),
        }
        # newest first, like the real API
        self.transactions[user_id].insert(0, record)
        return BackendResponse.ok(dict(record))

    async def get_transactions(self, user_id, type=None) -> BackendResponse:
        failed = self._record("get_transactions", user_id=user_id, type=type)
        if failed:
            return failed
        rows = [t for t in self.transactions[user_id] if type is None or t["type"] == type]
        return BackendResponse.ok(rows)

    async def get_transactions_by_date(self, user_id, date) -> BackendResponse:
        failed = self._record("get_transactions_by_date", user_id=user_id, date=date)
        if failed:
            return failed
        day = date[:10]
        rows = [t for t in self.transactions[user_id] if t["createdAt"][:10] == day]
        total = sum(t["amount"] for t in rows if t["type"] == "Expense")
        return BackendResponse.ok({"data": rows, "totalAmount": total})

    async def get_transactions_by_range(self, user_id, start_date, end_date, type=None) -> BackendResponse:
        failed = self._record(
            "get_transactions_by_range", user_id=user_id,
            start_date=start_date, end_date=end_date, type=type,
        )
        if failed:
            return failed
        rows = [
            t
            for t in self.transactions[user_id]
            if start_date[:10] <= t["createdAt"][:10] <= end_date[:10]
            and (type is None or t["type"] == type)
        ]
        return BackendResponse.ok(rows)

    async def search_transactions(self, user_id, query) -> BackendResponse:
        failed = self._record("search_transactions", user_id=user_id, query=query)
        if failed:
            return failed
        needle = query.lower()
        rows = [
            t
            for t in self.transactions[user_id]
            if needle in (t.get("description") or "").lower()
            or needle in (t.get("category") or "").lower()
        ]
        return BackendResponse.ok(
            {"data": rows, "totalAmount": sum(t["amount"] for t in rows), "count": len(rows)}
        )

    async def delete_transaction(self, transaction_id) -> BackendResponse:
        failed = self._record("delete_transaction", transaction_id=transaction_id)
        if failed:
            return failed
        for rows in self.transactions.values():
            for tx in rows:
                if tx["id"] == transaction_id:
                    rows.remove(tx)
                    return BackendResponse.ok()
        return BackendResponse.fail("La transacción no existe.", detail=f"unknown id {transaction_id}")

    async def get_summary_by_category(self, user_id, start_date=None, end_date=None) -> BackendResponse:
        failed = self._record(
            "get_summary_by_category", user_id=user_id,
            start_date=start_date, end_date=end_date,
        )
        if failed:
            return failed

        totals: Dict[str, float] = defaultdict(float)
        for tx in self.transactions[user_id]:
            if tx["type"] != "Expense":
                continue
            day = tx["createdAt"][:10]
            if start_date and end_date and not (start_date[:10] <= day <= end_date[:10]):
                continue
            totals[tx["category"]] += tx["amount"]

        grand_total = sum(totals.values())
        rows = [
            {
                "category": category,
                "totalAmount": amount,
                "percentage": round(amount * 100 / grand_total, 1) if grand_total else 0.0,
            }
            for category, amount in sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
        ]
        return BackendResponse.ok(rows)

    # -----------------------------
    # Users
    # -----------------------------
    async def get_balance(self, user_id) -> BackendResponse:
        failed = self._record("get_balance", user_id=user_id)
        if failed:
            return failed
        income = sum(t["amount"] for t in self.transactions[user_id] if t["type"] == "Income")
        expenses = sum(t["amount"] for t in self.transactions[user_id] if t["type"] == "Expense")
        return BackendResponse.ok(
            {"totalIncome": income, "totalExpenses": expenses, "currentBalance": income - expenses}
        )

    # -----------------------------
    # Rules
    # -----------------------------
    async def create_rule(self, user_id, category, amount_limit, period, rule_type=DEFAULT_RULE_TYPE) -> BackendResponse:
        failed = self._record(
            "create_rule", user_id=user_id, category=category,
            amount_limit=amount_limit, period=period, rule_type=rule_type,
        )
        if failed:
            return failed
        rule = {
            "id": uuid.uuid4().hex,
            "userId": user_id,
            "type": rule_type,
            "category": category,
            "amountLimit": float(amount_limit),
            "period": period,
            "isActive": True,
        }
        self.rules[user_id].append(rule)
        return BackendResponse.ok(dict(rule))

    async def update_rule(self, rule_id, amount_limit) -> BackendResponse:
        failed = self._record("update_rule", rule_id=rule_id, amount_limit=amount_limit)
        if failed:
            return failed
        for rules in self.rules.values():
            for rule in rules:
                if rule["id"] == rule_id:
                    rule["amountLimit"] = float(amount_limit)
                    return BackendResponse.ok(dict(rule))
        return BackendResponse.fail("La regla no existe.", detail=f"unknown id {rule_id}")

    async def get_rules(self, user_id) -> BackendResponse:
        failed = self._record("get_rules", user_id=user_id)
        if failed:
            return failed
        return BackendResponse.ok([dict(r) for r in self.rules[user_id]])

    # -----------------------------
    # Recurring transactions
    # -----------------------------
    async def create_recurring(
        self, user_id, amount, type, category, description, frequency, day_of_month
    ) -> BackendResponse:
        failed = self._record(
            "create_recurring", user_id=user_id, amount=amount, type=type,
            category=category, description=description,
            frequency=frequency, day_of_month=day_of_month,
        )
        if failed:
            return failed
        record = {
            "id": uuid.uuid4().hex,
            "userId": user_id,
            "amount": float(amount),
            "type": type,
            "category": category,
            "description": description,
            "frequency": frequency,
            "dayOfMonth": day_of_month,
            "isActive": True,
        }
        self.recurring[user_id].append(record)
        return BackendResponse.ok(dict(record))

    async def get_recurring(self, user_id) -> BackendResponse:
        failed = self._record("get_recurring", user_id=user_id)
        if failed:
            return failed
        return BackendResponse.ok([dict(r) for r in self.recurring[user_id]])

    async def delete_recurring(self, recurring_id) -> BackendResponse:
        failed = self._record("delete_recurring", recurring_id=recurring_id)
        if failed:
            return failed
        for rows in self.recurring.values():
            for rec in rows:
                if rec["id"] == recurring_id:
                    rows.remove(rec)
                    return BackendResponse.ok()
        return BackendResponse.fail(
            "La transacción recurrente no existe.", detail=f"unknown id {recurring_id}"
        )

    async def get_cashflow(self, user_id) -> BackendResponse:
        failed = self._record("get_cashflow", user_id=user_id)
        if failed:
            return failed

        def monthly(rec):
            factor = _MONTHLY_FACTOR.get((rec.get("frequency") or "monthly").lower(), 1.0)
            return rec["amount"] * factor

        active = [r for r in self.recurring[user_id] if r.get("isActive", True)]
        income = sum(monthly(r) for r in active if r["type"] == "Income")
        expenses = sum(monthly(r) for r in active if r["type"] == "Expense")
        return BackendResponse.ok(
            {
                "totalMonthlyIncome": income,
                "totalMonthlyExpenses": expenses,
                "netMonthlyCashflow": income - expenses,
            }
        )
