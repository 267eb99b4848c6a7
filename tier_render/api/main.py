"""
FastAPI Application
==================

Stateless single-document render endpoint. Every request starts its own
render engine and session; there is no pooling or progress tracking.
"""

from pathlib import Path
from typing import Any, Callable, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel
import uvicorn

import tier_render
from tier_render.config.logging import ensure_log_directories, get_logger, setup_logging
from tier_render.config.settings import get_settings
from tier_render.core.queue.worker_pool import normalize_text
from tier_render.core.rendering.session import PlaywrightRenderEngine, RenderEngine, RenderError

logger = get_logger(__name__)

EngineFactory = Callable[[], RenderEngine]


class RenderRequest(BaseModel):
    filepath: str


class RenderResponse(BaseModel):
    filename: str
    text: str


class HealthResponse(BaseModel):
    status: str
    version: str


def get_engine_factory() -> EngineFactory:
    """Dependency returning a factory for fresh render engines."""
    settings = get_settings()
    return lambda: PlaywrightRenderEngine(settings)


async def render_document(engine: RenderEngine, filepath: str) -> RenderResponse:
    """Load one document in a fresh session and return its visible text."""
    settings = get_settings()
    await engine.start()
    try:
        session = await engine.open_session()
        try:
            await session.navigate(filepath, settings.page_timeout_ms)
            text = await session.extract_text()
        finally:
            await session.close()
    finally:
        await engine.stop()

    return RenderResponse(
        filename=Path(filepath).name,
        text=normalize_text(text, settings.text_max_chars),
    )


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title="Tier Render API",
        description="Render a single HTML document to its visible text",
        version=tier_render.__version__,
    )

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy", version=tier_render.__version__)

    @app.post("/render", response_model=RenderResponse)
    async def render(
        request: RenderRequest, engine_factory: EngineFactory = Depends(get_engine_factory)
    ) -> Any:
        """Render one document and return its extracted text."""
        if not request.filepath or not Path(request.filepath).is_file():
            raise HTTPException(status_code=400, detail="Invalid file path")

        try:
            return await render_document(engine_factory(), request.filepath)
        except RenderError as e:
            logger.error("Render request failed", filepath=request.filepath, error=str(e))
            raise HTTPException(status_code=500, detail=str(e))

    return app


app = create_app()


def run(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Serve the API with uvicorn."""
    settings = get_settings()
    ensure_log_directories(settings)
    setup_logging(settings)
    uvicorn.run(app, host=host or settings.host, port=port or settings.port, log_config=None)


if __name__ == "__main__":
    run()
