import logging
import os
from pathlib import Path

from fastapi import FastAPI

from flagquiz.api.routes import router
from flagquiz.dataset.singleton import init_catalog

app = FastAPI(title="flagquiz", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=os.environ.get("FLAGQUIZ_LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

# flagquiz/main.py -> project root (holds data/countries.json + data/countries.geojson)
_project_root = Path(__file__).resolve().parents[1]


@app.on_event("startup")
async def _startup() -> None:
    catalog = init_catalog(project_root=Path(os.environ.get("FLAGQUIZ_DATA_ROOT", _project_root)))
    logger.info("catalog ready: %d countries, %d boundaries", len(catalog), len(catalog.hit_tester))


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "flagquiz", "version": "0.1.0"}
