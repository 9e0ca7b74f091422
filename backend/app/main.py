import logging
import logging.config

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.config import script_router as config_script_router
from app.api.metrics import router as metrics_router
from app.api.routes import router as api_router
from app.api.ws import live_session, router as ws_router, websocket_live_session
from app.config import get_settings


LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        }
    },
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        }
    },
    "root": {
        "handlers": ["default"],
        "level": "INFO",
    },
    "loggers": {
        "joinlive.live.connections": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        }
    },
}


logging.config.dictConfig(LOGGING_CONFIG)

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin) for origin in settings.cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_origin_regex=settings.cors_allow_origin_regex,
)


def _mask(value: str | None) -> str:
    return "[SET]" if value else "[NOT SET]"


@app.get("/health", tags=["system"])
def health_check() -> dict[str, str]:
    """Simple health check endpoint."""
    return {"status": "ok", "environment": settings.environment}


@app.on_event("startup")
async def _startup() -> None:
    logger.info("WHIP gateway: %s (key %s)", settings.whip_ingest_url, _mask(settings.whip_auth_key))
    logger.info("WHEP gateway: %s (key %s)", settings.whep_gateway_base, _mask(settings.whep_key))


@app.on_event("shutdown")
async def _shutdown() -> None:
    await live_session.aclose()


app.include_router(api_router, prefix="/api")
app.include_router(config_script_router)
app.include_router(ws_router)
app.include_router(metrics_router)
app.add_api_websocket_route("/", websocket_live_session)
