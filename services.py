from __future__ import annotations

import json
import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from config import Settings, get_settings
from llm import UNAVAILABLE_MESSAGE, AgentTool, LLMClient
from models import Category, ChatMessage, ChatRole, Goal, Transaction
from periods import as_naive_utc, current_week, week_window
from schemas import (
    GoalStatus,
    TransactionIn,
    TransactionOut,
    TransactionUpdate,
    cents_to_amount,
)


logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "Not enough data for an insight."

INSIGHT_PROMPT = """
Based on the following financial transactions, provide a short, actionable insight for the user.
The insight should be a single sentence.
Transactions: {transactions}
"""

CHAT_SYSTEM_PROMPT = (
    "You are a personal finance assistant. Use the get_transactions tool "
    "whenever you need the user's transactions. Amounts are in major currency "
    "units."
)


class TransactionNotFound(ValueError):
    pass


class CategoryExists(ValueError):
    pass


def amount_to_cents(amount: Union[float, int, Decimal]) -> int:
    # int() on a Decimal truncates toward zero: 12.345 -> 1234, -4.567 -> -456
    return int(Decimal(str(amount)) * 100)


def transactions_json(transactions: list[Transaction]) -> str:
    return json.dumps(
        [TransactionOut.from_model(txn).model_dump(mode="json") for txn in transactions]
    )


class TransactionService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, data: TransactionIn) -> Transaction:
        txn = Transaction(
            description=data.description,
            amount_cents=amount_to_cents(data.amount),
            category=data.category,
        )
        if data.timestamp is not None:
            txn.timestamp = as_naive_utc(data.timestamp)
        self.session.add(txn)
        self.session.commit()
        if txn.id is None:
            raise ValueError("Failed to create transaction")
        self.session.refresh(txn)
        logger.info(
            f"transaction_added: id={txn.id} amount_cents={txn.amount_cents} "
            f"category={txn.category}"
        )
        return txn

    def get(self, transaction_id: int) -> Transaction:
        txn = self.session.get(Transaction, transaction_id)
        if txn is None:
            raise TransactionNotFound("Transaction not found")
        return txn

    def list(self) -> list[Transaction]:
        stmt = select(Transaction).order_by(
            Transaction.timestamp.desc(), Transaction.id.desc()
        )
        return list(self.session.scalars(stmt).all())

    def recent(self, limit: int = 10) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .order_by(Transaction.timestamp.desc(), Transaction.id.desc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt).all())

    def balance_cents(self) -> int:
        stmt = select(func.coalesce(func.sum(Transaction.amount_cents), 0))
        return int(self.session.execute(stmt).scalar_one())

    def balance(self) -> float:
        return cents_to_amount(self.balance_cents())

    def update(self, transaction_id: int, data: TransactionUpdate) -> Transaction:
        txn = self.get(transaction_id)
        if data.description is not None:
            txn.description = data.description
        if data.amount is not None:
            txn.amount_cents = amount_to_cents(data.amount)
        if data.category is not None:
            txn.category = data.category
        if data.timestamp is not None:
            txn.timestamp = as_naive_utc(data.timestamp)
        self.session.commit()
        self.session.refresh(txn)
        logger.info(
            f"transaction_updated: id={txn.id} amount_cents={txn.amount_cents}"
        )
        return txn

    def delete(self, transaction_id: int) -> None:
        result = self.session.execute(
            delete(Transaction).where(Transaction.id == transaction_id)
        )
        self.session.commit()
        logger.info(f"transaction_deleted: id={transaction_id} rows={result.rowcount}")


class CategoryService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, name: str) -> Category:
        clean_name = name.strip()
        if not clean_name:
            raise ValueError("Category name cannot be empty")
        existing = self.session.scalar(
            select(Category).where(Category.name == clean_name)
        )
        if existing:
            raise CategoryExists("Category with this name already exists")

        category = Category(name=clean_name)
        self.session.add(category)
        self.session.commit()
        if category.id is None:
            raise ValueError("Failed to create category")
        self.session.refresh(category)
        return category

    def list(self) -> list[Category]:
        stmt = select(Category).order_by(Category.name.asc())
        return list(self.session.scalars(stmt).all())

    def delete(self, name: str) -> None:
        self.session.execute(delete(Category).where(Category.name == name.strip()))
        self.session.commit()


class GoalService:
    def __init__(self, session: Session, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()

    def get_for_week(self, week_start: date) -> Optional[Goal]:
        return self.session.scalar(
            select(Goal).where(Goal.week_start_date == week_start)
        )

    def _current_week(self, today: Optional[date]):
        return current_week(today=today, timezone=self.settings.timezone)

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "sqlite":
            return sqlite.insert(Goal)
        if dialect == "postgresql":
            return postgresql.insert(Goal)
        raise ValueError(f"Goal upsert is not supported on {dialect}")

    def set(
        self, amount: Union[float, int, Decimal], *, today: Optional[date] = None
    ) -> Goal:
        period = self._current_week(today)
        amount_cents = amount_to_cents(amount)

        stmt = self._insert().values(
            week_start_date=period.start, amount_cents=amount_cents
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["week_start_date"],
            set_={"amount_cents": stmt.excluded.amount_cents},
        ).returning(Goal.id)
        goal_id = self.session.execute(stmt).scalar_one_or_none()
        self.session.commit()
        if goal_id is None:
            raise ValueError("Failed to set goal")
        goal = self.session.get(Goal, goal_id, populate_existing=True)
        logger.info(f"goal_set: week_start={period.start} amount_cents={amount_cents}")
        return goal

    def spent_cents(self, *, today: Optional[date] = None) -> int:
        start, end = week_window(
            self._current_week(today), timezone=self.settings.timezone
        )
        stmt = select(func.coalesce(func.sum(Transaction.amount_cents), 0)).where(
            Transaction.timestamp >= start, Transaction.timestamp < end
        )
        return int(self.session.execute(stmt).scalar_one())

    def status(self, *, today: Optional[date] = None) -> GoalStatus:
        period = self._current_week(today)
        goal = self.get_for_week(period.start)
        goal_cents = goal.amount_cents if goal else 0
        spent_cents = self.spent_cents(today=period.start)
        return GoalStatus(
            goal=cents_to_amount(goal_cents),
            spent=cents_to_amount(spent_cents),
            remaining=cents_to_amount(goal_cents - spent_cents),
        )


class ChatHistoryService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def history(self, session_id: str) -> list[ChatMessage]:
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
        )
        return list(self.session.scalars(stmt).all())

    def append(self, session_id: str, role: ChatRole, content: str) -> ChatMessage:
        message = ChatMessage(session_id=session_id, role=role, content=content)
        self.session.add(message)
        self.session.commit()
        return message


class InsightService:
    def __init__(
        self,
        session: Session,
        llm: Optional[LLMClient],
        settings: Optional[Settings] = None,
    ) -> None:
        self.session = session
        self.llm = llm
        self.settings = settings or get_settings()

    def generate(self) -> str:
        if self.llm is None:
            return UNAVAILABLE_MESSAGE

        txns = TransactionService(self.session)
        limit = self.settings.insight_transaction_limit
        items = txns.recent(limit) if limit > 0 else txns.list()
        if not items:
            return NO_DATA_MESSAGE

        prompt = INSIGHT_PROMPT.format(transactions=transactions_json(items))
        logger.info(f"insight_requested: transactions={len(items)}")
        return self.llm.complete(prompt)

    def _tools(self) -> list[AgentTool]:
        def get_transactions() -> str:
            return transactions_json(TransactionService(self.session).list())

        return [
            AgentTool(
                name="get_transactions",
                description="Get the user's financial transactions.",
                func=get_transactions,
            )
        ]

    def chat(self, message: str, session_id: str) -> str:
        if self.llm is None:
            return UNAVAILABLE_MESSAGE

        history = ChatHistoryService(self.session)
        messages: list[dict[str, str]] = [
            {"role": "system", "content": CHAT_SYSTEM_PROMPT}
        ]
        for turn in history.history(session_id):
            role = "user" if turn.role == ChatRole.human else "assistant"
            messages.append({"role": role, "content": turn.content})
        messages.append({"role": "user", "content": message})

        response = self.llm.run_agent(messages, self._tools())

        history.append(session_id, ChatRole.human, message)
        history.append(session_id, ChatRole.ai, response)
        logger.info(
            f"chat_turn: session={session_id} prior_turns={len(messages) - 2}"
        )
        return response
