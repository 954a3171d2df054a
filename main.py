import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import get_settings
from database import get_db
from llm import LLMClient, get_llm_client, require_insights_configuration
from schemas import (
    BalanceOut,
    CategoryIn,
    CategoryList,
    CategoryOut,
    ChatIn,
    ChatOut,
    GoalIn,
    GoalOut,
    GoalStatus,
    InsightOut,
    StatusOut,
    TransactionIn,
    TransactionList,
    TransactionOut,
    TransactionUpdate,
)
from services import (
    CategoryExists,
    CategoryService,
    GoalService,
    InsightService,
    TransactionNotFound,
    TransactionService,
)


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Pennywise")


def get_llm() -> Optional[LLMClient]:
    return get_llm_client()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # echoed inputs may hold NaN/Infinity, which strict JSON cannot encode
    errors = [
        {key: value for key, value in error.items() if key not in ("input", "ctx")}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(errors)})


@app.on_event("startup")
def startup_event():
    settings = get_settings()
    require_insights_configuration(settings)
    logger.info(
        f"startup: insights_enabled={settings.insights_enabled} "
        f"llm_configured={settings.llm_api_key is not None}"
    )


@app.post("/transactions", response_model=TransactionOut, status_code=201)
def add_transaction(data: TransactionIn, db: Session = Depends(get_db)):
    try:
        txn = TransactionService(db).add(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TransactionOut.from_model(txn)


@app.get("/transactions", response_model=TransactionList)
def list_transactions(db: Session = Depends(get_db)):
    items = TransactionService(db).list()
    return TransactionList(
        transactions=[TransactionOut.from_model(txn) for txn in items]
    )


@app.get("/transactions/balance", response_model=BalanceOut)
def transactions_balance(db: Session = Depends(get_db)):
    return BalanceOut(balance=TransactionService(db).balance())


@app.put("/transactions/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: int, data: TransactionUpdate, db: Session = Depends(get_db)
):
    try:
        txn = TransactionService(db).update(transaction_id, data)
    except TransactionNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TransactionOut.from_model(txn)


@app.delete("/transactions/{transaction_id}", response_model=StatusOut)
def delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    TransactionService(db).delete(transaction_id)
    return StatusOut(status="deleted")


@app.post("/categories", response_model=CategoryOut, status_code=201)
def add_category(data: CategoryIn, db: Session = Depends(get_db)):
    try:
        category = CategoryService(db).add(data.name)
    except CategoryExists as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return CategoryOut.from_model(category)


@app.get("/categories", response_model=CategoryList)
def list_categories(db: Session = Depends(get_db)):
    items = CategoryService(db).list()
    return CategoryList(categories=[CategoryOut.from_model(c) for c in items])


@app.delete("/categories/{name}", response_model=StatusOut)
def delete_category(name: str, db: Session = Depends(get_db)):
    CategoryService(db).delete(name)
    return StatusOut(status="deleted")


@app.post("/goals", response_model=GoalOut)
def set_goal(data: GoalIn, db: Session = Depends(get_db)):
    try:
        goal = GoalService(db).set(data.amount)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return GoalOut.from_model(goal)


@app.get("/goals", response_model=GoalStatus)
def goal_status(db: Session = Depends(get_db)):
    return GoalService(db).status()


@app.get("/insights", response_model=InsightOut)
def generate_insight(
    db: Session = Depends(get_db), llm: Optional[LLMClient] = Depends(get_llm)
):
    return InsightOut(insight=InsightService(db, llm).generate())


@app.post("/insights/chat", response_model=ChatOut)
def chat(
    data: ChatIn,
    db: Session = Depends(get_db),
    llm: Optional[LLMClient] = Depends(get_llm),
):
    response = InsightService(db, llm).chat(data.message, data.session_id)
    return ChatOut(response=response)
