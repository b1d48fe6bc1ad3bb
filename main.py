from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core import (
    APILoggingMiddleware, TaskManager, WorkspaceManager, setup_cleanup_handlers,
    setup_exception_handlers, setup_logging
)
from core import config

from session_service import DocumentSession
from session_service.router import router as documents_router
from relevance_service.router import router as relevance_router
from insights_service.router import router as insights_router
from narration_service.router import router as narration_router


def create_app(session: Optional[DocumentSession] = None) -> FastAPI:
    """Build the application around one document session."""
    setup_logging()

    app = FastAPI(
        title="Document Navigation System",
        version="1.0.0",
        description="PDF heading extraction, cross-document relevance, insights and narration"
    )
    app.state.session = session or DocumentSession(workspace=WorkspaceManager(config.WORKSPACE_DIR))
    app.state.task_manager = TaskManager()
    app.state.debug = config.ENVIRONMENT == "development"

    # Add API logging middleware first
    app.add_middleware(APILoggingMiddleware)

    # Setup global exception handlers
    setup_exception_handlers(app)

    # Setup cleanup handlers
    setup_cleanup_handlers(app, app.state.task_manager)

    # CORS: allow every origin (no credentials)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,   # must be False when allow_origins=["*"]
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(documents_router)
    app.include_router(relevance_router)
    app.include_router(insights_router)
    app.include_router(narration_router)

    @app.get("/")
    async def root():
        return {
            "message": "Document Navigation System",
            "version": "1.0.0",
            "endpoints": {
                "documents": "/documents",
                "state": "/state",
                "relevance": "/relevance/selection",
                "insights": "/insights/generate",
                "narration": "/narration/generate",
            }
        }

    @app.get("/healthz")
    async def healthz():
        state = app.state.session.state
        return {
            "ok": True,
            "documents": len(state.documents),
            "background_tasks": app.state.task_manager.pending,
        }

    @app.get("/config/viewer")
    async def viewer_config():
        """Client id for the embedded PDF viewer."""
        if not config.PDF_EMBED_API_KEY:
            return JSONResponse(status_code=500, content={
                "error": {
                    "type": "ConfigurationError",
                    "message": "PDF_EMBED_API_KEY is not configured",
                    "status_code": 500,
                }
            })
        return {"clientId": config.PDF_EMBED_API_KEY}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
