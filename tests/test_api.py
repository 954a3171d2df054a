import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app, get_llm
from periods import current_week


class FakeLLM:
    def complete(self, prompt: str) -> str:
        return "Cut back on coffee."

    def run_agent(self, messages, tools) -> str:
        return f"You said: {messages[-1]['content']}"


@pytest.fixture
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False)

    def _override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_llm] = lambda: FakeLLM()
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_create_transaction_and_balance(client: TestClient) -> None:
    r = client.post(
        "/transactions",
        json={"description": "Coffee", "amount": 4.5, "category": "Food"},
    )
    assert r.status_code == 201
    body = r.json()
    assert set(body) == {"id", "description", "amount", "category", "timestamp"}
    assert body["description"] == "Coffee"
    assert body["amount"] == 4.5
    assert body["category"] == "Food"

    r = client.get("/transactions/balance")
    assert r.json() == {"balance": 4.5}


def test_balance_is_zero_when_empty(client: TestClient) -> None:
    assert client.get("/transactions/balance").json() == {"balance": 0}


def test_list_update_and_delete_transaction(client: TestClient) -> None:
    created = client.post(
        "/transactions",
        json={
            "description": "Groceries",
            "amount": 20,
            "category": "Food",
            "timestamp": "2025-01-06T10:00:00",
        },
    ).json()

    r = client.put(f"/transactions/{created['id']}", json={"amount": 12.345})
    assert r.status_code == 200
    assert r.json()["amount"] == 12.34
    assert r.json()["description"] == "Groceries"

    listed = client.get("/transactions").json()["transactions"]
    assert [t["amount"] for t in listed] == [12.34]

    r = client.delete(f"/transactions/{created['id']}")
    assert r.json() == {"status": "deleted"}
    r = client.delete(f"/transactions/{created['id']}")
    assert r.status_code == 200
    assert client.get("/transactions").json() == {"transactions": []}


def test_update_unknown_transaction_is_404(client: TestClient) -> None:
    r = client.put("/transactions/42", json={"description": "nope"})
    assert r.status_code == 404


def test_categories_endpoints(client: TestClient) -> None:
    assert client.post("/categories", json={"name": "Transport"}).status_code == 201
    created = client.post("/categories", json={"name": "Food"}).json()
    assert created["name"] == "Food"
    assert client.post("/categories", json={"name": "Food"}).status_code == 409

    names = [c["name"] for c in client.get("/categories").json()["categories"]]
    assert names == ["Food", "Transport"]

    assert client.delete("/categories/Food").json() == {"status": "deleted"}
    assert client.delete("/categories/Food").status_code == 200
    names = [c["name"] for c in client.get("/categories").json()["categories"]]
    assert names == ["Transport"]


def test_goal_endpoints_track_current_week(client: TestClient) -> None:
    r = client.post("/goals", json={"amount": 100})
    assert r.status_code == 200
    body = r.json()
    assert body["amount"] == 100
    assert body["week_start_date"] == current_week().start.isoformat()

    client.post(
        "/transactions",
        json={"description": "Dinner", "amount": 40, "category": "Food"},
    )
    assert client.get("/goals").json() == {"goal": 100, "spent": 40, "remaining": 60}


def test_insight_and_chat_endpoints(client: TestClient) -> None:
    client.post(
        "/transactions",
        json={"description": "Coffee", "amount": -4.5, "category": "Food"},
    )
    assert client.get("/insights").json() == {"insight": "Cut back on coffee."}

    r = client.post("/insights/chat", json={"message": "Hi", "sessionId": "abc"})
    assert r.status_code == 200
    assert r.json() == {"response": "You said: Hi"}


def test_chat_requires_session_id(client: TestClient) -> None:
    r = client.post("/insights/chat", json={"message": "Hi"})
    assert r.status_code == 422


def test_insights_unavailable_without_client(client: TestClient) -> None:
    app.dependency_overrides[get_llm] = lambda: None
    assert client.get("/insights").json() == {
        "insight": "AI insights are currently unavailable."
    }


def test_non_finite_amounts_are_422(client: TestClient) -> None:
    headers = {"Content-Type": "application/json"}
    r = client.post(
        "/transactions",
        content='{"description": "x", "amount": Infinity, "category": "F"}',
        headers=headers,
    )
    assert r.status_code == 422
    assert r.json()["detail"][0]["loc"] == ["body", "amount"]

    created = client.post(
        "/transactions",
        json={"description": "Coffee", "amount": 4.5, "category": "Food"},
    ).json()
    r = client.put(
        f"/transactions/{created['id']}",
        content='{"amount": -Infinity}',
        headers=headers,
    )
    assert r.status_code == 422

    r = client.post("/goals", content='{"amount": NaN}', headers=headers)
    assert r.status_code == 422

    assert client.get("/transactions/balance").json() == {"balance": 4.5}
    assert client.get("/goals").json()["goal"] == 0
