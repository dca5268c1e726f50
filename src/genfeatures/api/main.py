from __future__ import annotations

from datetime import UTC, datetime
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from .routers.studio import router as studio_router
from ..observability.metrics import metrics_middleware_factory
from ..infrastructure.events import load_event_client
from ..services.model_router import ModelRouter

load_dotenv()  # Load GEMINI_API_KEY, OPENAI_API_KEY, GENFEATURES_* from .env if present

app = FastAPI(title="GenFeatures API", version="0.1.0")

logging.getLogger("genfeatures").info("api_starting")

# Observability: request latency histogram
app.middleware("http")(metrics_middleware_factory())

app.include_router(studio_router)
app.include_router(studio_router, prefix="/api")

# CORS (for a local preview frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"name": "GenFeatures API", "version": "0.1.0"}


@app.get("/health")
def health():
    selection = ModelRouter().maybe_select_provider("artifact")
    publisher = load_event_client()
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "components": {
            "api": "ok",
            "provider": selection.name if selection else None,
            "events": None if publisher is None else ("connected" if publisher.connected else "disconnected"),
        },
    }


@app.get("/metrics")
def metrics() -> Response:
    data = generate_latest(REGISTRY)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
