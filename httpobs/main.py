from fastapi import FastAPI

from httpobs.api.demo import router as demo_router
from httpobs.api.metrics import router as metrics_router
from httpobs.observability.logging import configure_logging
from httpobs.observability.middleware import ObservationMiddleware


app = FastAPI(title="httpobs", version="0.1.0")
app.add_middleware(ObservationMiddleware)
app.include_router(metrics_router)
app.include_router(demo_router)


@app.on_event("startup")
def _startup() -> None:
    configure_logging()


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
