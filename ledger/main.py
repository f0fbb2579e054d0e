import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ledger.api.commissions import router as commissions_router
from ledger.api.customers import router as customers_router
from ledger.api.debts import router as debts_router
from ledger.api.invoices import router as invoices_router
from ledger.api.orders import router as orders_router
from ledger.api.payments import router as payments_router
from ledger.config import get_settings
from ledger.errors import ConflictError, LedgerError, NotFoundError, StoreError, ValidationError
from ledger.service import Ledger
from ledger.services.refresh import RefreshScheduler

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StoreError, 503),
)


def create_app(ledger: Optional[Ledger] = None) -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        current = app.state.ledger
        current.create_schema()

        def refresh_debt_summary():
            app.state.debt_summary = current.debt_summary()

        scheduler = RefreshScheduler(
            refresh_debt_summary,
            delay=settings.REFRESH_DEBOUNCE_SECONDS,
        )
        unsubscribe = current.notifier.subscribe(scheduler.notify)
        app.state.refresh_scheduler = scheduler
        refresh_debt_summary()
        logger.info("%s ready", settings.APP_NAME)

        yield

        unsubscribe()
        scheduler.close()
        current.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.ledger = ledger or Ledger()
    app.state.debt_summary = None

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        status_code = next(
            (code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500
        )
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status_code, content={"detail": exc.message})

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    app.include_router(customers_router)
    app.include_router(invoices_router)
    app.include_router(payments_router)
    app.include_router(orders_router)
    app.include_router(debts_router)
    app.include_router(commissions_router)

    return app


app = create_app()
