import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.config import Settings, get_settings
from backend.database.mongodb import get_db
from backend.database.repositories import ensure_indexes
from backend.routes.chat_routes import router as chat_router
from backend.routes.session_routes import router as session_router
from backend.routes.user_routes import router as user_router
from backend.services.errors import ChatError

SERVER_ERROR = "Internal server error"

# Logging setup
logger = logging.getLogger("main")
logging.basicConfig(level=logging.INFO)


def create_app(settings: Optional[Settings] = None, *, init_db: bool = True) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Persona Chat API", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Routers ----------
    app.include_router(chat_router)                                 # /chat, /clear, /messages
    app.include_router(user_router, prefix="/users", tags=["Users"])
    app.include_router(session_router)                              # /sessions...

    @app.exception_handler(ChatError)
    async def chat_error_handler(request: Request, exc: ChatError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=500, content={"error": SERVER_ERROR})

    if init_db:
        @app.on_event("startup")
        def _ensure_idx():
            if not settings.mongo_uri:
                logger.error("MONGO_URI is missing; storage routes will fail until it is set.")
                return
            ensure_indexes(get_db())

    # ---------- Health ----------
    @app.get("/")
    def root():
        logger.info("Health check successful")
        return {"message": "Persona Chat API is running"}

    @app.get("/health")
    def health_check():
        return {
            "status": "OK",
            "database": "configured" if settings.mongo_uri else "not configured",
            "llm": "configured" if settings.openrouter_api_key else "not configured",
        }

    return app


app = create_app()
