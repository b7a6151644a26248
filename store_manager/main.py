from prometheus_fastapi_instrumentator import Instrumentator

from store_manager import create_app
from store_manager.core.config import settings
from store_manager.core.logging import configure_logging

configure_logging(settings.LOG_LEVEL)
app = create_app()
Instrumentator().instrument(app).expose(app, include_in_schema=False)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


def run() -> None:
    import uvicorn

    uvicorn.run("store_manager.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
