from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models import Category, Goal, Transaction


def cents_to_amount(cents: int) -> float:
    return cents / 100


class TransactionIn(BaseModel):
    description: str = Field(..., max_length=500)
    amount: float = Field(..., allow_inf_nan=False)
    category: str = Field(..., max_length=100)
    timestamp: Optional[datetime] = None


class TransactionUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = Field(default=None, max_length=500)
    amount: Optional[float] = Field(default=None, allow_inf_nan=False)
    category: Optional[str] = Field(default=None, max_length=100)
    timestamp: Optional[datetime] = None


class TransactionOut(BaseModel):
    id: int
    description: str
    amount: float
    category: str
    timestamp: datetime

    @classmethod
    def from_model(cls, txn: Transaction) -> "TransactionOut":
        return cls(
            id=txn.id,
            description=txn.description,
            amount=cents_to_amount(txn.amount_cents),
            category=txn.category,
            timestamp=txn.timestamp,
        )


class TransactionList(BaseModel):
    transactions: list[TransactionOut]


class BalanceOut(BaseModel):
    balance: float


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str

    @classmethod
    def from_model(cls, category: Category) -> "CategoryOut":
        return cls.model_validate(category)


class CategoryList(BaseModel):
    categories: list[CategoryOut]


class GoalIn(BaseModel):
    amount: float = Field(..., allow_inf_nan=False)


class GoalOut(BaseModel):
    id: int
    week_start_date: date
    amount: float

    @classmethod
    def from_model(cls, goal: Goal) -> "GoalOut":
        return cls(
            id=goal.id,
            week_start_date=goal.week_start_date,
            amount=cents_to_amount(goal.amount_cents),
        )


class GoalStatus(BaseModel):
    goal: float
    spent: float
    remaining: float


class StatusOut(BaseModel):
    status: str


class InsightOut(BaseModel):
    insight: str


class ChatIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1)
    session_id: str = Field(..., alias="sessionId", min_length=1, max_length=100)


class ChatOut(BaseModel):
    response: str
