from __future__ import annotations

from datetime import UTC, datetime
import os
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from .routers.projects import router as projects_router
from .routers.features import router as features_router
from .routers.concepts import router as concepts_router
from .routers.ai import router as ai_router
from .routers.diag import router as diag_router
from ..infrastructure.repository import BrainstormRepository, get_repo
from ..observability.metrics import metrics_middleware_factory

load_dotenv()  # Load environment variables from .env if present (OPENAI_API_KEY, XAI_API_KEY, etc.)

app = FastAPI(title="Featureboard API", version="0.1.0")

# Observability: request latency histogram
app.middleware("http")(metrics_middleware_factory())

ROUTERS = (projects_router, features_router, concepts_router, ai_router, diag_router)

for r in ROUTERS:
    app.include_router(r)
    # Also expose the same routers under /api, the prefix the board client calls
    app.include_router(r, prefix="/api")

# CORS (for the board client dev server on localhost:5173 / :3000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip()
        for o in os.getenv(
            "FEATUREBOARD_CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
        ).split(",")
        if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _health_payload(repo: BrainstormRepository) -> dict:
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "components": {
            "api": "ok",
            # Actual backend; an unreachable Mongo reports "memory"
            "repo": repo.backend,
        },
    }


@app.get("/")
def root():
    return {"name": "Featureboard API", "version": "0.1.0"}


@app.get("/health")
def health(repo: BrainstormRepository = Depends(get_repo)):
    return _health_payload(repo)


@app.get("/metrics")
def metrics() -> Response:
    # Expose Prometheus metrics
    data = generate_latest(REGISTRY)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


@app.get("/api/health")
def api_health(repo: BrainstormRepository = Depends(get_repo)):
    return _health_payload(repo)


@app.get("/api/metrics")
def api_metrics() -> Response:
    data = generate_latest(REGISTRY)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
