# wasteflow/devserver/main.py
"""In-memory stand-in for the pickup/payment API, for local runs and tests."""
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wasteflow.devserver.repo import InMemoryJobRepo
from wasteflow.devserver.routers import payments


def create_app(repo: Optional[InMemoryJobRepo] = None) -> FastAPI:
    app = FastAPI(title="wasteflow dev API")
    app.state.repo = repo or InMemoryJobRepo()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(payments.router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
