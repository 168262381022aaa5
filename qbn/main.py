import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from qbn.api.routes import router
from qbn.assets.registry import load_story, story_root

# Configure logging
logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    root = story_root()
    app.state.story = load_story(root=root)
    logger.info("Loaded story from %s (%d passages)", root, len(app.state.story))
    yield


app = FastAPI(title="qbn", version="0.1.0", lifespan=_lifespan)
app.include_router(router)
