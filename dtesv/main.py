"""
DTE-SV — Main API Application
FastAPI backend para generación de DTEs y libros legales de IVA en El Salvador.

Flow:
  1. POST /api/v1/dte/generar      → DTE normalizado + totales
  2. (firma externa RS256 del documento normalizado)
  3. POST /api/v1/dte/transmitir   → sello de recepción o errores estructurados
  4. POST /api/v1/libros/{tipo}    → libro mensual (JSON / CSV / XLSX)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dtesv.core.config import get_mh_url, settings
from dtesv.modules.processor import DocumentIngestError
from dtesv.modules.sign_engine import SignEngineError
from dtesv.routers import dte_router, libro_router

# ─────────────────────────────────────────────────────────────
# LOGGING
# ─────────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("dte-sv")


# ─────────────────────────────────────────────────────────────
# APP LIFECYCLE
# ─────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.app_name} v{settings.app_version} starting...")
    logger.info(f"   Environment: {settings.mh_environment.value}")
    logger.info(f"   MH mode: {settings.mh_mode.value}")
    logger.info(f"   MH Recepción URL: {get_mh_url('recepcion_dte')}")
    yield
    logger.info(f"{settings.app_name} shutdown complete.")


app = FastAPI(
    title="DTE-SV API",
    description=(
        "Generación de Documentos Tributarios Electrónicos de El Salvador, "
        "transmisión al Ministerio de Hacienda y libros legales de IVA."
    ),
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─────────────────────────────────────────────────────────────
# GLOBAL EXCEPTION HANDLERS
# ─────────────────────────────────────────────────────────────

@app.exception_handler(DocumentIngestError)
async def ingest_error_handler(request: Request, exc: DocumentIngestError):
    return JSONResponse(status_code=400, content={"error": "INGEST_ERROR", "detail": exc.message, "code": exc.code})


@app.exception_handler(SignEngineError)
async def sign_error_handler(request: Request, exc: SignEngineError):
    return JSONResponse(status_code=400, content={"error": "SIGN_ERROR", "detail": exc.message, "code": exc.code})


# ─────────────────────────────────────────────────────────────
# ROUTES
# ─────────────────────────────────────────────────────────────

@app.get("/health", tags=["Sistema"])
async def health_check():
    """Verificar estado del servicio."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "environment": settings.mh_environment.value,
        "mh_mode": settings.mh_mode.value,
    }


app.include_router(dte_router.router)
app.include_router(libro_router.router)
