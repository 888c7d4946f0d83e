import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cafe_ledger.api.routes.finance import router as finance_router
from cafe_ledger.api.routes.inventory import router as inventory_router
from cafe_ledger.api.routes.reports import router as reports_router
from cafe_ledger.api.routes.users import router as users_router
from cafe_ledger.core.config import settings
from cafe_ledger.core.logging import configure_logging
from cafe_ledger.services.errors import LedgerError

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.detail, type(exc).__name__)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.include_router(users_router)
app.include_router(inventory_router)
app.include_router(finance_router)
app.include_router(reports_router)


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}
