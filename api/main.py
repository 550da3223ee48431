"""
Main FastAPI application for the workflow node mapping service.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import mapping_router, system_router
from api.middleware import add_logging_middleware
from core.config import settings
from core.errors import NodeMappingError, NodeTypeNotFoundError, WorkflowParseError
from core.logging_config import configure_logging_from_settings, get_logger
from services.node_mapping import create_node_mapper

logger = get_logger(__name__)

ERROR_STATUS = {
    WorkflowParseError: 422,
    NodeTypeNotFoundError: 404,
}

# Create FastAPI app
app = FastAPI(
    title="Workflow Node Mapping API",
    description="Maps n8n workflow graphs to code-generation-ready data: transformed parameters, "
                "credential environment variables and the generated project's dependencies.",
    version="1.0.0",
    openapi_tags=[
        {
            "name": "mapping",
            "description": "Workflow mapping, analysis and node type catalog"
        },
        {
            "name": "system",
            "description": "Health checks"
        }
    ]
)


@app.on_event("startup")
async def startup_event():
    """Build the node mapper when the server starts"""
    configure_logging_from_settings(settings)
    app.state.node_mapper = create_node_mapper(settings)
    logger.info(f"Node mapper ready with {len(app.state.node_mapper.registry)} node types")


@app.exception_handler(NodeMappingError)
async def node_mapping_error_handler(request: Request, exc: NodeMappingError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# Add logging middleware first (for request tracking)
add_logging_middleware(app)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for development
    allow_credentials=False,  # Must be False when allow_origins=["*"]
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include all route modules
app.include_router(mapping_router)
app.include_router(system_router)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Workflow Node Mapping API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
