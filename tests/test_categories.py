import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from schemas import TransactionIn
from services import CategoryExists, CategoryService, TransactionService


def test_categories_are_listed_by_name() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        categories = CategoryService(session)
        categories.add("Transport")
        categories.add("Food")
        categories.add("  Health ")

        assert [c.name for c in categories.list()] == ["Food", "Health", "Transport"]


def test_duplicate_category_is_rejected() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        CategoryService(session).add("Food")
        with pytest.raises(CategoryExists):
            CategoryService(session).add("Food")


def test_blank_category_name_is_rejected() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        with pytest.raises(ValueError):
            CategoryService(session).add("   ")


def test_delete_by_name_is_idempotent_and_leaves_transactions() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        categories = CategoryService(session)
        categories.add("Food")
        categories.add("Utilities")
        txn = TransactionService(session).add(
            TransactionIn(description="Bread", amount=-2.2, category="Food")
        )

        categories.delete("Food")
        categories.delete("Food")
        categories.delete("Nonexistent")

        assert [c.name for c in categories.list()] == ["Utilities"]
        remaining = TransactionService(session).list()
        assert [t.id for t in remaining] == [txn.id]
        assert remaining[0].category == "Food"


def test_delete_matches_the_trimmed_name() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        categories = CategoryService(session)
        categories.add("  Health ")
        categories.add("Food")

        categories.delete(" Health ")

        assert [c.name for c in categories.list()] == ["Food"]
