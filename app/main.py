import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.grade_transitions.router import router as grade_transitions_router
from app.core.config import settings

logging.basicConfig(level=settings.log_level)


def create_app() -> FastAPI:
    app = FastAPI(title="Grade Transitions Backend")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(grade_transitions_router)

    return app


app = create_app()
