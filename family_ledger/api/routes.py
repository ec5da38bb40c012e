from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException
from loguru import logger

from family_ledger.deps import dispatcher, repo
from family_ledger.models.schemas import (
    BotReply,
    ClassifyRequest,
    ClassifyResponse,
    Expense,
    MessageRequest,
    Period,
)
from family_ledger.parsing.classifier import classify
from family_ledger.utils.dates import period_range

router = APIRouter()

STARTED_AT = datetime.now(timezone.utc)


@router.get("/")
def index():
    return {"detail": "Family Ledger is running"}


@router.get("/health")
def health():
    database = "ok"
    try:
        repo.ping()
    except Exception as e:
        logger.error("Health check failed: {}", e)
        database = "error"

    now = datetime.now(timezone.utc)
    return {
        "status": "healthy" if database == "ok" else "degraded",
        "uptime": f"{int((now - STARTED_AT).total_seconds())}s",
        "database": database,
        "timestamp": now.isoformat(),
    }


@router.post("/classify", response_model=ClassifyResponse)
def classify_message(request: ClassifyRequest):
    return ClassifyResponse(command=classify(request.message))


@router.post("/messages", response_model=BotReply)
def handle_message(request: MessageRequest):
    logger.info("HTTP message from {}: {}", request.user_id, request.message)
    return dispatcher.handle_text(
        request.user_id,
        request.message,
        group_id=request.group_id,
        display_name=request.display_name,
    )


@router.get("/expenses", response_model=list[Expense])
def list_expenses(user_id: str, period: Period = "today"):
    start, end = period_range(period)
    return repo.query_expenses(user_id, start, end)


@router.get("/expenses/{expense_id}", response_model=Expense)
def get_expense(expense_id: int):
    expense = repo.get(expense_id)
    if expense is None:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense


@router.delete("/expenses/{expense_id}")
def delete_expense(expense_id: int):
    if not repo.delete(expense_id):
        raise HTTPException(status_code=404, detail="Expense not found")
    logger.info("Deleted expense #{}", expense_id)
    return {"detail": "Expense deleted"}
