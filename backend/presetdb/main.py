from typing import Any

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, settings
from .database import PresetsDatabase, get_database
from .routes.presets import health_for
from .routes.presets import router as presets_router
from .schemas import HealthResponse
from .telemetry.logging_utils import configure_logging
from .telemetry.middleware import TelemetryMiddleware

configure_logging(settings.log_level, settings.perf_log_level, settings.location_log_level)
app = FastAPI(title=settings.app_name, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TelemetryMiddleware)

app.include_router(presets_router, prefix="/api")


@app.get("/health", response_model=HealthResponse)
def healthcheck(database: PresetsDatabase = Depends(get_database)) -> HealthResponse:
    return health_for(database)


def server_options(config: Settings = settings) -> dict[str, Any]:
    return {
        "host": config.host,
        "port": config.port,
        "reload": config.environment == "development",
        "log_level": "info" if config.log_level == "PERF" else config.log_level.lower(),
    }


def run() -> None:
    uvicorn.run("presetdb.main:app", **server_options())


if __name__ == "__main__":
    run()
