from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flashstudy.config import settings
from flashstudy.db import init_all_databases


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_all_databases(settings.data_dir)
    yield
    from flashstudy.services.session_registry import (
        study_sessions,
        test_sessions,
        tutor_sessions,
    )

    for registry in (test_sessions, study_sessions, tutor_sessions):
        registry.clear()


def create_app() -> FastAPI:
    application = FastAPI(
        title="Flashstudy Backend", version="0.1.0", lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from flashstudy.routers import health, practice_tests, sets, study, tutor
    from flashstudy.routers import settings as settings_router

    application.include_router(health.router)
    application.include_router(sets.router, prefix="/sets", tags=["sets"])
    application.include_router(practice_tests.router, tags=["tests"])
    application.include_router(study.router, tags=["study"])
    application.include_router(tutor.router, tags=["tutor"])
    application.include_router(
        settings_router.router, prefix="/settings", tags=["settings"]
    )

    return application


app = create_app()
