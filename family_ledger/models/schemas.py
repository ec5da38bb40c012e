from datetime import datetime
from typing import Annotated, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, model_validator

Category = Literal[
    "breakfast",
    "lunch",
    "dinner",
    "drink",
    "snack",
    "transport",
    "other",
]
CATEGORIES: tuple[Category, ...] = get_args(Category)
FALLBACK_CATEGORY: Category = "other"

Period = Literal["today", "week", "month"]
Role = Literal["parent", "child"]

AMOUNT_MIN = 1
AMOUNT_MAX = 100000

Amount = Annotated[int, Field(ge=AMOUNT_MIN, le=AMOUNT_MAX)]
Ordinal = Annotated[int, Field(ge=1)]


# ── Commands ────────────────────────────────────────────────────────


class _Command(BaseModel):
    model_config = ConfigDict(frozen=True)


class _Targeted(_Command):
    """Delete and edit point at one record: by ordinal, by category, or the latest."""

    index: Ordinal | None = None
    category: Category | None = None

    @model_validator(mode="after")
    def check_one_target(self):
        if self.index is not None and self.category is not None:
            raise ValueError("index and category are mutually exclusive")
        return self


class ExpenseCommand(_Command):
    kind: Literal["expense"] = "expense"
    amount: Amount
    category: Category
    note: str = ""


class AmountOnlyCommand(_Command):
    kind: Literal["amount_only"] = "amount_only"
    amount: Amount


class QueryCommand(_Command):
    kind: Literal["query"] = "query"
    period: Period


class DeleteCommand(_Targeted):
    kind: Literal["delete"] = "delete"


class EditCommand(_Targeted):
    kind: Literal["edit"] = "edit"
    amount: Amount


class BindCommand(_Command):
    kind: Literal["bind"] = "bind"
    role: Role


class SettleCommand(_Command):
    kind: Literal["settle"] = "settle"


class ConfirmCommand(_Command):
    kind: Literal["confirm"] = "confirm"
    target_name: str | None = None


class ReceiveCommand(_Command):
    kind: Literal["receive"] = "receive"


class StatsCommand(_Command):
    kind: Literal["stats"] = "stats"
    category: Category | None = None


class UnknownCommand(_Command):
    kind: Literal["unknown"] = "unknown"


Command = Annotated[
    Union[
        ExpenseCommand,
        AmountOnlyCommand,
        QueryCommand,
        DeleteCommand,
        EditCommand,
        BindCommand,
        SettleCommand,
        ConfirmCommand,
        ReceiveCommand,
        StatsCommand,
        UnknownCommand,
    ],
    Field(discriminator="kind"),
]


# ── Records ─────────────────────────────────────────────────────────


class User(BaseModel):
    user_id: str
    display_name: str | None = None


class Member(BaseModel):
    user_id: str
    group_id: str
    role: Role
    display_name: str | None = None


class Expense(BaseModel):
    id: int | None = None
    user_id: str
    group_id: str | None = None
    amount: int
    category: Category
    note: str = ""
    created_at: datetime
    confirmed_at: datetime | None = None
    received_at: datetime | None = None


class ExpenseSummary(BaseModel):
    """What a listing remembers about each row so "#N" can find it again."""

    model_config = ConfigDict(frozen=True)

    id: int
    amount: int
    category: Category
    note: str = ""
    created_at: datetime

    @classmethod
    def from_expense(cls, expense: Expense) -> "ExpenseSummary":
        return cls(
            id=expense.id,
            amount=expense.amount,
            category=expense.category,
            note=expense.note,
            created_at=expense.created_at,
        )


class BotReply(BaseModel):
    text: str
    quick_replies: list[str] = []


# ── API payloads ────────────────────────────────────────────────────


class ClassifyRequest(BaseModel):
    message: str


class ClassifyResponse(BaseModel):
    command: Command


class MessageRequest(BaseModel):
    user_id: str
    message: str
    group_id: str | None = None
    display_name: str | None = None
