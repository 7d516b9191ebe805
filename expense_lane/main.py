"""
Expense Fast Lane — FastAPI application entry‑point.
"""
import logging
import pathlib
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from expense_lane import __version__
from expense_lane.config import get_settings
from expense_lane.services.registry import ClientRegistry

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s  %(name)-30s  %(levelname)-5s  %(message)s",
)
logger = logging.getLogger(__name__)

STATIC_DIR = pathlib.Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.settings = settings
    app.state.registry = ClientRegistry(settings)
    logger.info("Mock mode: %s", "enabled" if settings.MOCK_MODE else "disabled")
    yield
    logger.info("Shutting down")
    await app.state.registry.aclose()


app = FastAPI(
    title="Expense Fast Lane",
    description="Payment message → verification → Jira → Notion → Slack",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Malformed JSON bodies get the same 400 shape as schema failures
    logger.error("API error: %s", exc.errors())
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "; ".join(e["msg"] for e in exc.errors())},
    )


# ── Register API router ──────────────────────────────────────────────────
from expense_lane.routers.payments import router as payments_router  # noqa: E402

app.include_router(payments_router, prefix="/api", tags=["Expense Fast Lane"])

# Browser form; mounted last so /api routes take precedence
app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="static")


def serve() -> None:
    logger.info("Server running at: http://localhost:%d", settings.PORT)
    logger.info("API endpoint: http://localhost:%d/api/process-payment", settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    serve()
