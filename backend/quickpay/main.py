"""
Main Entry Point - FastAPI Application
Progetto: QuickPay (Fatturazione e Pagamenti)

Configura l'applicazione FastAPI con middleware, router, gestori
di errore e lifecycle.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from quickpay.api import api_v1_router
from quickpay.core.config import settings
from quickpay.core.database import check_database, close_db
from quickpay.core.exceptions import AppException, ValidationFailedError
from quickpay.core.store_errors import translate_store_error
from quickpay.schemas.common import ErrorResponse, format_validation_errors

# ------------------------------------------------------------
# Configurazione Logging
# ------------------------------------------------------------
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def error_response(exc: AppException) -> JSONResponse:
    """Costruisce l'envelope di errore standard per un'eccezione applicativa."""
    details = getattr(exc, "details", None) or None
    debug = (exc.extra or {}).get("debug")
    body = ErrorResponse(
        error=exc.title,
        code=exc.error_code,
        message=exc.detail,
        details=details,
        debug=None if settings.is_production else debug,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(body, exclude_none=True),
    )


# ------------------------------------------------------------
# Lifespan Handler
# ------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestisce il ciclo di vita dell'applicazione.

    - Startup: verifica una sola volta la raggiungibilità del database
    - Shutdown: chiude le connessioni database
    """
    # Startup
    logger.info("Avvio %s v%s (%s)", settings.app_name, settings.app_version, settings.app_env)
    app.state.db_ready = await check_database()
    if not app.state.db_ready:
        logger.error("Database non raggiungibile: /health/ready restituirà 503")
    else:
        logger.info("Applicazione avviata con successo")

    yield

    # Shutdown
    logger.info("Arresto applicazione in corso...")
    await close_db()
    logger.info("Applicazione arrestata")


# ------------------------------------------------------------
# FastAPI Application
# ------------------------------------------------------------
app = FastAPI(
    title=settings.app_name,
    description="Fatturazione e pagamenti - Backend API",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ------------------------------------------------------------
# Middleware CORS
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------
# Exception Handlers
# ------------------------------------------------------------
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Gestore per tutte le eccezioni applicative.

    Usa status_code, error_code e title definiti dalla classe.
    """
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.error_code, exc.detail)
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Converte gli errori di validazione FastAPI in risposta 400.

    Tutte le violazioni sono riportate in `details`.
    """
    details = format_validation_errors(exc.errors())
    logger.info(
        "Validazione fallita su %s %s: %s violazioni",
        request.method, request.url.path, len(details),
    )
    return error_response(ValidationFailedError(details=details))


@app.exception_handler(SQLAlchemyError)
async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Errori dello store non gestiti dai service: tradotti nella tassonomia."""
    logger.error("Errore database su %s %s: %s", request.method, request.url.path, exc)
    return error_response(translate_store_error(exc, f"{request.method} {request.url.path}"))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Gestore generico per tutte le eccezioni non catturate.

    Converte l'eccezione in risposta HTTP 500 e logga l'errore.
    """
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return error_response(
        AppException(
            "An unexpected error occurred",
            extra={"debug": str(exc)},
        )
    )


# ------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------
@app.get(
    "/health",
    name="Health Check",
    summary="Controlla lo stato dell'applicazione",
    tags=["System"],
)
async def health_check() -> dict[str, str]:
    """
    Endpoint per il controllo dello stato di salute.

    Returns:
        dict: Stato dell'applicazione
    """
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
    }


@app.get(
    "/health/ready",
    name="Readiness Check",
    summary="Controlla che il database fosse raggiungibile all'avvio",
    tags=["System"],
)
async def readiness_check(request: Request) -> JSONResponse:
    """200 se il controllo del database allo startup è riuscito, 503 altrimenti."""
    ready = getattr(request.app.state, "db_ready", False)
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if ready else "unavailable", "database": ready},
    )


# ------------------------------------------------------------
# Router
# ------------------------------------------------------------
app.include_router(api_v1_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "quickpay.main:app",
        host="0.0.0.0",
        port=settings.backend_port,
        reload=settings.is_development,
    )
