# Event ledger backend entrypoint: FastAPI app exposing payments and invoices.

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eventledger.api import invoices
from eventledger.api import payments
from eventledger.core.exceptions import ConsistencyError, LedgerError
from eventledger.core.logging_config import configure_logging
from eventledger.core.settings import get_settings
from eventledger.db.base import Base
from eventledger.db.session import engine

logger = logging.getLogger(__name__)

app = FastAPI()
settings = get_settings()

origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(payments.router)
app.include_router(invoices.router)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if isinstance(exc, ConsistencyError):
        # Details are in the log; clients get a generic message.
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_message})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/")
def read_root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.on_event("startup")
def prepare_ledger():
    configure_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)
    logger.info("Ledger backend started", extra={"environment": settings.environment})
