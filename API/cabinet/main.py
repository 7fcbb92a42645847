from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from cabinet.api.auth import router as auth_router
from cabinet.api.health import router as health_router
from cabinet.api.metrics import router as metrics_router
from cabinet.api.profile import router as profile_router
from cabinet.core.bootstrap import build_services
from cabinet.core.errors import (
    CabinetError,
    cabinet_exception_handler,
    http_exception_handler,
    request_id_middleware,
    unhandled_exception_handler,
    validation_exception_handler,
)
from cabinet.core.logging import configure_logging
from cabinet.core.metrics import metrics_middleware
from cabinet.core.settings import settings


configure_logging(settings.log_level)

app = FastAPI(title="Tutor Cabinet API", version="0.1.0")
app.include_router(health_router)
app.include_router(metrics_router)
app.include_router(auth_router, prefix=settings.api_prefix)
app.include_router(profile_router, prefix=settings.api_prefix)
app.middleware("http")(metrics_middleware)
app.middleware("http")(request_id_middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(CabinetError, cabinet_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


@app.on_event("startup")
async def on_startup():
    app.state.services = build_services(settings)


@app.on_event("shutdown")
async def on_shutdown():
    services = getattr(app.state, "services", None)
    if services is not None:
        await services.close()


def run() -> None:
    import uvicorn

    uvicorn.run("cabinet.main:app", host=settings.app_host, port=settings.app_port, log_level=settings.log_level.lower())
