import logging
import time

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.routing import Match

from api.dependencies import get_backend
from api.metrics import REQUESTS_TOTAL, REQUEST_LATENCY_SECONDS
from api.routers import auth, events

# Logging configuration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Smart Calendar")
app.include_router(auth.router)
app.include_router(events.router)


@app.on_event("startup")
async def startup() -> None:
    # Restore a session saved by a previous run
    session = get_backend().restore()
    logger.info(f"Startup complete (connected: {session is not None})")


UNMATCHED_ENDPOINT = "unmatched"


def _endpoint_label(request: Request) -> str:
    # Route template, not the raw path; anything unrouted shares one label
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", UNMATCHED_ENDPOINT)
    return UNMATCHED_ENDPOINT


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    endpoint = _endpoint_label(request)
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        REQUESTS_TOTAL.labels(endpoint=endpoint, status="500").inc()
        raise
    if endpoint != "/metrics":
        REQUEST_LATENCY_SECONDS.labels(endpoint=endpoint).observe(time.perf_counter() - started)
        REQUESTS_TOTAL.labels(endpoint=endpoint, status=str(response.status_code)).inc()
    return response


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
