# core/intent.py
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TransactionType(str, Enum):
    EXPENSE = "Expense"
    INCOME = "Income"


class IntentKind(str, Enum):
    """
    Closed set of operations the classifier may ask for.
    Anything else the classifier invents is treated as a QUESTION.
    """

    VALIDATE_EXPENSE = "validate_expense"
    CREATE_EXPENSE = "create_expense"
    CREATE_INCOME = "create_income"
    CREATE_RECURRING_EXPENSE = "create_recurring_expense"
    CREATE_RECURRING_INCOME = "create_recurring_income"
    LIST_TRANSACTIONS = "list_transactions"
    LIST_BY_DATE = "list_transactions_by_date"
    LIST_BY_RANGE = "list_transactions_by_range"
    SEARCH = "search_transactions"
    GET_BALANCE = "get_balance"
    GET_SUMMARY = "get_summary"
    GET_CASHFLOW = "get_cashflow"
    LIST_RECURRING = "list_recurring"
    DELETE_RECURRING = "delete_recurring"
    DELETE_TRANSACTION = "delete_transaction"
    CREATE_RULE = "create_rule"
    LIST_RULES = "list_rules"
    QUESTION = "question"

    # -----------------------------
    # Semantic helpers
    # -----------------------------
    def is_confirmable(self) -> bool:
        return self in _CONFIRMABLE

    def transaction_type(self) -> Optional[TransactionType]:
        return _TRANSACTION_TYPES.get(self)

    def is_read_heavy(self) -> bool:
        return self in _READ_HEAVY


_TRANSACTION_TYPES = {
    IntentKind.CREATE_EXPENSE: TransactionType.EXPENSE,
    IntentKind.CREATE_INCOME: TransactionType.INCOME,
    IntentKind.CREATE_RECURRING_EXPENSE: TransactionType.EXPENSE,
    IntentKind.CREATE_RECURRING_INCOME: TransactionType.INCOME,
}

_CONFIRMABLE = {IntentKind.CREATE_EXPENSE, IntentKind.CREATE_INCOME}

_READ_HEAVY = {
    IntentKind.GET_BALANCE,
    IntentKind.GET_SUMMARY,
    IntentKind.GET_CASHFLOW,
    IntentKind.LIST_TRANSACTIONS,
    IntentKind.LIST_BY_DATE,
    IntentKind.LIST_BY_RANGE,
    IntentKind.SEARCH,
    IntentKind.LIST_RECURRING,
    IntentKind.LIST_RULES,
}


class ClassifiedIntent(BaseModel):
    """
    One parsed operation, exactly as the classifier produced it.
    Immutable: handlers derive new copies instead of mutating it.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    kind: IntentKind = Field(IntentKind.QUESTION, alias="intent")
    amount: Optional[Decimal] = Field(None, ge=0)
    category: Optional[str] = None
    description: Optional[str] = None
    type: Optional[TransactionType] = None
    period: Optional[str] = None
    frequency: Optional[str] = None
    day_of_month: Optional[int] = Field(None, alias="dayOfMonth", ge=1, le=31)
    start_date: Optional[str] = Field(None, alias="startDate")
    end_date: Optional[str] = Field(None, alias="endDate")
    search_query: Optional[str] = Field(None, alias="searchQuery")
    response: Optional[str] = None

    @field_validator("kind", mode="before")
    @classmethod
    def unknown_kinds_are_questions(cls, v):
        if isinstance(v, IntentKind):
            return v
        try:
            return IntentKind(str(v).strip().lower())
        except ValueError:
            return IntentKind.QUESTION

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        if v is None or isinstance(v, TransactionType):
            return v
        text = str(v).strip().lower()
        if text == "expense":
            return TransactionType.EXPENSE
        if text == "income":
            return TransactionType.INCOME
        return None

    @field_validator(
        "category",
        "description",
        "period",
        "frequency",
        "start_date",
        "end_date",
        "search_query",
        mode="before",
    )
    @classmethod
    def null_strings_are_absent(cls, v):
        if isinstance(v, str) and v.strip().lower() in ("", "null", "none"):
            return None
        return v

    def is_filtered_view(self) -> bool:
        """True when the user asked for a slice (by type or category) of their data."""
        return self.type is not None or bool(self.category)
