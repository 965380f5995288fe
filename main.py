import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from hourbook.core.config import settings
from hourbook.core.errors import HourbookError, PartialFailureError
from hourbook.api.v1.clients import router as clients_router
from hourbook.api.v1.time_entries import router as time_entries_router
from hourbook.api.v1.invoices import router as invoices_router
from hourbook.api.v1.settings import router as settings_router
from hourbook.api.v1.dashboard import router as dashboard_router
from hourbook.db.mongo import get_mongo_client, close_mongo_client
from hourbook.db.mongo_indexes import ensure_indexes

app = FastAPI(title="Hourbook Backend")

# Build CORS allowlist from local dev + configured origins
_base_origins = {
    "http://localhost:5173",
    "http://127.0.0.1:5173",
}
if settings.FRONTEND_BASE_URL:
    _base_origins.add(settings.FRONTEND_BASE_URL)
for o in settings.ALLOWED_ORIGINS:
    _base_origins.add(o)
# Normalize by stripping trailing slashes to match Origin header format
_allowed_origins = sorted({o.rstrip('/') for o in _base_origins if o})

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_origin_regex=r"^http(s)?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HourbookError)
async def hourbook_error_handler(request: Request, exc: HourbookError):
    if exc.status_code >= 500:
        logging.getLogger("uvicorn.error").error("%s %s failed: %s", request.method, request.url.path, exc.message)
    body = {"detail": exc.message}
    if isinstance(exc, PartialFailureError):
        body["invoice_id"] = exc.invoice_id
    return JSONResponse(status_code=exc.status_code, content=body)


@app.get("/")
def read_root():
    return {"message": "Welcome to Hourbook Backend"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


# Mount API routers
app.include_router(clients_router, prefix="/api/v1")
app.include_router(time_entries_router, prefix="/api/v1")
app.include_router(invoices_router, prefix="/api/v1")
app.include_router(settings_router, prefix="/api/v1")
app.include_router(dashboard_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup():
    # Initialize Mongo client
    get_mongo_client()
    # Create required indexes (non-fatal on failure)
    try:
        await ensure_indexes()
    except Exception as exc:
        logging.getLogger("uvicorn.error").warning(
            "Mongo index initialization failed: %s", exc
        )


@app.on_event("shutdown")
async def on_shutdown():
    # Close Mongo client
    close_mongo_client()
