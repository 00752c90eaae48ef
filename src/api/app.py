"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes import dashboard, loans, reports
from src.config import settings
from src.engine.amortization import InvalidInputError

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="CRE Debt Manager",
    description="Commercial real estate debt portfolio management",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(dashboard.router)
app.include_router(loans.router)
app.include_router(reports.router)


@app.exception_handler(InvalidInputError)
async def invalid_terms_handler(request: Request, exc: InvalidInputError):
    logger.warning("Invalid loan terms on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=400,
        content={"detail": f"Invalid loan terms: {exc}", "field": exc.field},
    )


@app.get("/health")
async def health():
    return {"status": "ok"}
