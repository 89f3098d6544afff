# marketplace/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi

from marketplace.core.config import settings
from marketplace.core.db import init_db
from marketplace.core.errors import MarketError, market_error_handler
from marketplace.core.logging_config import configure_logging
from marketplace.routers import (
    admin_reports,
    auth,
    health,
    image,
    listings,
    messages,
    messages_ws,
    offers,
    profiles,
    saved,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    for r in app.routes:
        logger.debug("route %s %s", getattr(r, "methods", None), getattr(r, "path", None))
    yield


app = FastAPI(title="Marketplace API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(MarketError, market_error_handler)

routers = [
    health.router,
    auth.router,
    profiles.router,
    listings.router,
    saved.router,
    offers.router,
    messages.router,
    messages_ws.router,
    admin_reports.router,
    image.router,
]

for r in routers:
    app.include_router(r)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version="1.0.0",
        description="Marketplace API",
        routes=app.routes,
    )
    comps = schema.setdefault("components", {})
    schemes = comps.setdefault("securitySchemes", {})
    for key in list(schemes.keys()):
        if schemes[key].get("type") == "oauth2":
            schemes.pop(key, None)
    schemes["BearerAuth"] = {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
    schema["security"] = [{"BearerAuth": []}]
    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = custom_openapi
