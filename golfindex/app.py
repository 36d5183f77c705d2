from __future__ import annotations

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from golfindex.api.health import health as _health_handler
from golfindex.api.routers.courses import router as courses_router
from golfindex.api.routers.handicap import router as handicap_router
from golfindex.api.routers.rounds import router as rounds_router
from golfindex.config import get_settings
from golfindex.metrics import MetricsMiddleware, metrics_app


app = FastAPI(title="golfindex")

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(MetricsMiddleware)

app.include_router(courses_router)
app.include_router(rounds_router)
app.include_router(handicap_router)
app.add_api_route(
    "/health",
    _health_handler,
    methods=["GET"],
    response_model=None,
    tags=["health"],
)

_metrics_router = APIRouter()

@_metrics_router.get("/metrics", include_in_schema=False)
async def _metrics_endpoint(request: Request):
    return await metrics_app(request)

app.include_router(_metrics_router)
