from typing import Annotated, Callable, Optional

from fastapi import APIRouter, Depends, FastAPI
from fastapi.responses import PlainTextResponse

from wallbox_stats import __version__
from wallbox_stats.config import Settings
from wallbox_stats.entrypoints.api import dependencies, schemas
from wallbox_stats.services.snapshot import Snapshot

version_router = APIRouter()
currentdata_router = APIRouter()


@version_router.get("/version", response_class=PlainTextResponse)
async def get_version():
    return __version__


@currentdata_router.get("/currentdata", response_model=schemas.MeasurementResponse)
async def get_current_data(
    snapshot: Annotated[Snapshot, Depends(dependencies.get_snapshot)],
):
    return schemas.MeasurementResponse.from_measurement(snapshot.get())


def create_app(snapshot: Snapshot, settings: Settings, lifespan: Optional[Callable] = None) -> FastAPI:
    """
    Build the read-only web surface. Each endpoint is only mounted if enabled.
    """
    app = FastAPI(title="Wallbox Stats API", version=__version__, lifespan=lifespan)
    app.state.snapshot = snapshot

    if settings.WEBSERVICE_VERSION:
        app.include_router(version_router)
    if settings.WEBSERVICE_CURRENTDATA:
        app.include_router(currentdata_router)

    return app
