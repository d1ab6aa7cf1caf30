from dataclasses import asdict
from datetime import date

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from sqlalchemy.orm import Session

from config import configure_logging, get_settings
from database import get_db, init_db
from models import Debt, Goal, Subscription, Transaction, TransactionType
from periods import Period, resolve_period
from preferences import (
    PreferencesStore,
    SQLPreferencesStore,
    UserPreferences,
    format_currency,
)
from scheduler import SchedulerManager
from schemas import (
    BudgetIn,
    CategoryIn,
    DebtIn,
    DebtStatusIn,
    ExpenseLimitIn,
    GoalIn,
    GoalProgressIn,
    PreferencesIn,
    SubscriptionIn,
    TransactionIn,
)
from services import (
    BudgetService,
    CSVService,
    DataService,
    DebtService,
    ExpenseLimitService,
    GoalService,
    MetricsService,
    NotFoundError,
    ReportService,
    SubscriptionService,
    TransactionFilters,
    TransactionService,
    ValidationError,
)

app = FastAPI(title="Finance Tracker")
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

scheduler_manager = SchedulerManager()


@app.on_event("startup")
def startup_event():
    configure_logging()
    init_db()
    scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


def period_from_request(request: Request) -> Period:
    period_slug = request.query_params.get("period")
    start = request.query_params.get("start")
    end = request.query_params.get("end")
    if start and end and not period_slug:
        period_slug = "custom"
    try:
        return resolve_period(period_slug, start, end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def filters_from_request(request: Request) -> TransactionFilters:
    params = request.query_params
    try:
        start = date.fromisoformat(params["start"]) if params.get("start") else None
        end = date.fromisoformat(params["end"]) if params.get("end") else None
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    txn_type = None
    if params.get("type"):
        try:
            txn_type = TransactionType(params["type"])
        except ValueError:
            txn_type = None
    return TransactionFilters(
        start=start,
        end=end,
        category=params.get("category") or None,
        type=txn_type,
    )


def get_preferences_store(db: Session = Depends(get_db)) -> PreferencesStore:
    return SQLPreferencesStore(db)


def preferences_to_dict(prefs: UserPreferences) -> dict[str, object]:
    return {**asdict(prefs), "currency_symbol": prefs.currency_symbol}


def transaction_to_dict(txn: Transaction) -> dict[str, object]:
    return {
        "id": txn.id,
        "date": txn.date.isoformat(),
        "occurred_at": txn.occurred_at.isoformat(),
        "type": txn.type.value,
        "amount_cents": txn.amount_cents,
        "category": txn.category,
        "description": txn.description,
    }


def goal_to_dict(goal: Goal) -> dict[str, object]:
    return {
        "id": goal.id,
        "name": goal.name,
        "target_cents": goal.target_cents,
        "current_cents": goal.current_cents,
        "progress_percent": GoalService.progress_percent(goal),
        "deadline": goal.deadline.isoformat() if goal.deadline else None,
        "status": goal.status.value,
        "created_at": goal.created_at.isoformat(),
    }


def debt_to_dict(debt: Debt) -> dict[str, object]:
    return {
        "id": debt.id,
        "person_name": debt.person_name,
        "amount_cents": debt.amount_cents,
        "description": debt.description,
        "type": debt.type.value,
        "status": debt.status.value,
        "created_date": debt.created_date.isoformat(),
        "due_date": debt.due_date.isoformat() if debt.due_date else None,
    }


def subscription_to_dict(sub: Subscription) -> dict[str, object]:
    return {
        "id": sub.id,
        "name": sub.name,
        "cost_cents": sub.cost_cents,
        "billing_cycle": sub.billing_cycle.value,
        "next_billing_date": sub.next_billing_date.isoformat(),
        "category": sub.category,
        "description": sub.description,
        "status": sub.status.value,
    }


# Transactions


@app.get("/api/transactions")
def api_transactions(request: Request, db: Session = Depends(get_db)):
    filters = filters_from_request(request)
    items = TransactionService(db).list(filters)
    return [transaction_to_dict(txn) for txn in items]


@app.post("/api/transactions", status_code=201)
def api_create_transaction(data: TransactionIn, db: Session = Depends(get_db)):
    txn = TransactionService(db).create(data)
    return transaction_to_dict(txn)


@app.get("/api/transactions/export.csv")
def api_export_transactions(request: Request, db: Session = Depends(get_db)):
    filters = filters_from_request(request)
    items = TransactionService(db).list(filters)
    content = CSVService(db).export(items)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=transactions.csv"},
    )


@app.post("/api/transactions/import", status_code=201)
async def api_import_transactions(
    file: UploadFile = File(...), db: Session = Depends(get_db)
):
    raw = await file.read()
    try:
        count = CSVService(db).commit(raw.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValidationError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"imported": count}


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def api_delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        TransactionService(db).delete(transaction_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


# Dashboard and reports


@app.get("/api/stats/monthly")
def api_monthly_stats(
    db: Session = Depends(get_db),
    store: PreferencesStore = Depends(get_preferences_store),
):
    stats = MetricsService(db).monthly_stats()
    prefs = store.load()
    return {
        **stats,
        "formatted": {
            key.removesuffix("_cents"): format_currency(value, prefs)
            for key, value in stats.items()
        },
    }


@app.get("/api/reports")
def api_report(request: Request, db: Session = Depends(get_db)):
    period = period_from_request(request)
    data = ReportService(db).gather_data(period)
    data["period"] = asdict(period)
    data["transactions"] = [transaction_to_dict(t) for t in data["transactions"]]
    return data


# Budgets


@app.get("/api/budgets")
def api_budgets(db: Session = Depends(get_db)):
    return [
        {
            "id": b.id,
            "category": b.category,
            "amount_cents": b.amount_cents,
            "start_date": b.start_date.isoformat(),
            "end_date": b.end_date.isoformat(),
        }
        for b in BudgetService(db).list()
    ]


@app.post("/api/budgets", status_code=201)
def api_create_budget(data: BudgetIn, db: Session = Depends(get_db)):
    try:
        budget = BudgetService(db).create(data)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"id": budget.id, **data.model_dump(mode="json")}


@app.delete("/api/budgets/{budget_id}", status_code=204)
def api_delete_budget(budget_id: int, db: Session = Depends(get_db)):
    try:
        BudgetService(db).delete(budget_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


# Goals


@app.get("/api/goals")
def api_goals(db: Session = Depends(get_db)):
    return [goal_to_dict(goal) for goal in GoalService(db).list()]


@app.post("/api/goals", status_code=201)
def api_create_goal(data: GoalIn, db: Session = Depends(get_db)):
    return goal_to_dict(GoalService(db).create(data))


@app.put("/api/goals/{goal_id}/progress")
def api_update_goal_progress(
    goal_id: int, data: GoalProgressIn, db: Session = Depends(get_db)
):
    try:
        goal = GoalService(db).update_progress(goal_id, data)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return goal_to_dict(goal)


@app.delete("/api/goals/{goal_id}", status_code=204)
def api_delete_goal(goal_id: int, db: Session = Depends(get_db)):
    try:
        GoalService(db).delete(goal_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


# Expense limits


@app.get("/api/expense-limits")
def api_expense_limits(db: Session = Depends(get_db)):
    return [
        {
            "id": limit.id,
            "category": limit.category,
            "limit_cents": limit.limit_cents,
            "period_type": limit.period_type.value,
            "start_date": limit.start_date.isoformat(),
            "end_date": limit.end_date.isoformat(),
        }
        for limit in ExpenseLimitService(db).list()
    ]


@app.post("/api/expense-limits", status_code=201)
def api_upsert_expense_limit(data: ExpenseLimitIn, db: Session = Depends(get_db)):
    try:
        limit = ExpenseLimitService(db).upsert(data)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "id": limit.id,
        "category": limit.category,
        "limit_cents": limit.limit_cents,
        "period_type": limit.period_type.value,
        "start_date": limit.start_date.isoformat(),
        "end_date": limit.end_date.isoformat(),
    }


@app.get("/api/expense-limits/status")
def api_expense_limits_status(db: Session = Depends(get_db)):
    return ExpenseLimitService(db).statuses()


@app.get("/api/expense-limits/exceeded-transactions")
def api_exceeded_transactions(db: Session = Depends(get_db)):
    return ExpenseLimitService(db).exceeded_transactions()


@app.delete("/api/expense-limits/{limit_id}", status_code=204)
def api_delete_expense_limit(limit_id: int, db: Session = Depends(get_db)):
    try:
        ExpenseLimitService(db).delete(limit_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


# Debts


@app.get("/api/debts")
def api_debts(db: Session = Depends(get_db)):
    return [debt_to_dict(debt) for debt in DebtService(db).list()]


@app.get("/api/debts/summary")
def api_debts_summary(db: Session = Depends(get_db)):
    return DebtService(db).summary()


@app.post("/api/debts", status_code=201)
def api_create_debt(data: DebtIn, db: Session = Depends(get_db)):
    try:
        debt = DebtService(db).create(data)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return debt_to_dict(debt)


@app.put("/api/debts/{debt_id}/status")
def api_update_debt_status(
    debt_id: int, data: DebtStatusIn, db: Session = Depends(get_db)
):
    try:
        debt = DebtService(db).set_status(debt_id, data.status)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return debt_to_dict(debt)


@app.delete("/api/debts/{debt_id}", status_code=204)
def api_delete_debt(debt_id: int, db: Session = Depends(get_db)):
    try:
        DebtService(db).delete(debt_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


# Subscriptions


@app.get("/api/subscriptions")
def api_subscriptions(db: Session = Depends(get_db)):
    return [subscription_to_dict(sub) for sub in SubscriptionService(db).list()]


@app.get("/api/subscriptions/summary")
def api_subscriptions_summary(db: Session = Depends(get_db)):
    return SubscriptionService(db).summary()


@app.post("/api/subscriptions", status_code=201)
def api_create_subscription(data: SubscriptionIn, db: Session = Depends(get_db)):
    return subscription_to_dict(SubscriptionService(db).create(data))


@app.put("/api/subscriptions/{subscription_id}")
def api_update_subscription(
    subscription_id: int, data: SubscriptionIn, db: Session = Depends(get_db)
):
    try:
        sub = SubscriptionService(db).update(subscription_id, data)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return subscription_to_dict(sub)


@app.delete("/api/subscriptions/{subscription_id}", status_code=204)
def api_delete_subscription(subscription_id: int, db: Session = Depends(get_db)):
    try:
        SubscriptionService(db).delete(subscription_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


# Preferences and data management


@app.get("/api/preferences")
def api_preferences(store: PreferencesStore = Depends(get_preferences_store)):
    return preferences_to_dict(store.load())


@app.put("/api/preferences")
def api_update_preferences(
    data: PreferencesIn, store: PreferencesStore = Depends(get_preferences_store)
):
    payload = data.model_dump()
    prefs = UserPreferences(
        currency=payload["currency"],
        theme=payload["theme"],
        privacy_mode=payload["privacy_mode"],
        categories=tuple(payload["categories"]),
    )
    try:
        saved = store.save(prefs)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return preferences_to_dict(saved)


@app.post("/api/preferences/categories", status_code=201)
def api_add_category(
    data: CategoryIn, store: PreferencesStore = Depends(get_preferences_store)
):
    prefs = store.load()
    try:
        updated = prefs.with_category(data.name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if updated is not prefs:
        updated = store.save(updated)
    return preferences_to_dict(updated)


@app.get("/api/export")
def api_export(
    db: Session = Depends(get_db),
    store: PreferencesStore = Depends(get_preferences_store),
):
    backup = DataService(db, preferences=store).export_backup()
    backup["transactions"] = [transaction_to_dict(t) for t in backup["transactions"]]
    return backup


@app.delete("/api/clear-all")
def api_clear_all(
    db: Session = Depends(get_db),
    store: PreferencesStore = Depends(get_preferences_store),
):
    return {"deleted": DataService(db, preferences=store).clear_all()}


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=3000, reload=False)


if __name__ == "__main__":
    main()
