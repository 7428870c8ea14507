"""
SLD Engine Server
=================

FastAPI server for the single-line diagram editing engine.

Features:
- Editing sessions with command history and JSON persistence of diagrams
- Drawing layers with visibility, locking and ordering
- Pointer-driven interaction (select, drag, rubberband, pan)
- Component templates from the catalog service, optional load values
  from the calculation service
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import load_config

config = load_config()

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Import services
from .services.catalog_client import CatalogClient, STANDARD_TEMPLATES
from .services.calculation_client import CalculationClient

# Import canvas manager
from .canvas.arrange import Alignment, Direction
from .canvas.errors import DiagramError
from .canvas.interaction import Tool
from .canvas.state_manager import StateManager

# Import API routers
from .api import canvas_routes, diagram_routes, interaction_routes, layer_routes
from .api.error_handlers import diagram_error_handler
from .models.layer_models import LayerCategory


# Shared service instances
state_manager: StateManager = None
catalog_client: CatalogClient = None
calculation_client: CalculationClient = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global state_manager, catalog_client, calculation_client

    logger.info("[SLD-ENGINE] Starting up...")

    # Initialize state manager
    sessions_dir = Path(config.sessions_dir)
    if not sessions_dir.is_absolute():
        sessions_dir = Path(__file__).parent.parent / sessions_dir
    state_manager = StateManager(sessions_dir=sessions_dir, config=config)

    # Initialize external service clients
    catalog_client = CatalogClient(
        base_url=config.catalog_api_url,
        timeout=config.http_timeout
    )
    calculation_client = CalculationClient(
        base_url=config.calculation_api_url,
        timeout=config.http_timeout
    )

    # Inject into route modules
    canvas_routes.state_manager = state_manager
    interaction_routes.state_manager = state_manager
    layer_routes.state_manager = state_manager

    diagram_routes.state_manager = state_manager
    diagram_routes.catalog_client = catalog_client
    diagram_routes.calculation_client = calculation_client

    logger.info("[SLD-ENGINE] Services initialized")

    yield

    # Cleanup
    logger.info("[SLD-ENGINE] Shutting down...")
    if catalog_client:
        await catalog_client.close()
    if calculation_client:
        await calculation_client.close()


# Create FastAPI app
app = FastAPI(
    title="SLD Engine",
    description="Interactive single-line diagram editing engine",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(DiagramError, diagram_error_handler)

# Include API routers
app.include_router(canvas_routes.router)
app.include_router(diagram_routes.router)
app.include_router(interaction_routes.router)
app.include_router(layer_routes.router)


@app.get("/")
async def root():
    """Return API info."""
    return {
        "service": "SLD Engine",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "canvas": "/api/canvas/session",
            "diagram": "/api/diagram/{session_id}",
            "interaction": "/api/interaction/{session_id}/pointer/down",
            "layers": "/api/layers/{session_id}"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "sld-engine",
        "catalog_api": config.catalog_api_url,
        "calculation_api": config.calculation_api_url
    }


@app.get("/api/info")
async def api_info():
    """Get engine settings and the available tools and layer categories."""
    return {
        "service": "SLD Engine",
        "version": "1.0.0",
        "tools": [t.value for t in Tool],
        "alignments": [a.value for a in Alignment],
        "directions": [d.value for d in Direction],
        "layer_categories": [c.value for c in LayerCategory],
        "templates": [
            {
                "template_id": t.template_id,
                "type": t.type,
                "name": t.name,
                "category": t.category,
                "default_size": t.default_size.model_dump()
            }
            for t in STANDARD_TEMPLATES.values()
        ],
        "view": {
            "min_zoom": config.min_zoom,
            "max_zoom": config.max_zoom,
            "zoom_step": config.zoom_step,
            "grid_size": config.grid_size,
            "snap_to_grid": config.snap_to_grid
        },
        "history_depth": config.history_depth
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "sld_engine.server:app",
        host="0.0.0.0",
        port=8080,
        reload=True
    )
