from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from infrastructure.metrics.metrics import metrics_endpoint
from infrastructure.db.database import dispose_engine, init_models
from infrastructure.scheduler import ReconciliationScheduler
from app.dependencies import close_ledger_client, run_reconciliation
from app.routers.v1 import engine_error_handler, router
from domain.exceptions import InstallmentEngineError


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    scheduler = ReconciliationScheduler(job=run_reconciliation)
    scheduler.start()
    app.state.scheduler = scheduler
    try:
        yield
    finally:
        await scheduler.stop()
        await close_ledger_client()
        await dispose_engine()


app = FastAPI(title="installment-engine", lifespan=lifespan)
app.add_exception_handler(InstallmentEngineError, engine_error_handler)


@app.get("/metrics")
async def metrics():
    return metrics_endpoint()


@app.get("/health")
async def health():
    return {"status": "ok", "message": "installment-engine is running"}


app.include_router(router)
