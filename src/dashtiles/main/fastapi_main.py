import argparse
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Body, FastAPI, Request
from fastapi.responses import JSONResponse

from dashtiles.adapters.phase_table_adapters.file_adapter import FilePhaseTableSource
from dashtiles.adapters.phase_table_adapters.http_adapter import HttpPhaseTableSource
from dashtiles.adapters.prompt_adapters.request_prompt import RequestPrompt
from dashtiles.adapters.storage_adapters.memory_adapter import InMemoryKeyValueAdapter
from dashtiles.adapters.storage_adapters.sqlite_adapter import SqliteKeyValueAdapter
from dashtiles.adapters.weather_adapters.wttr_adapter import WttrAdapter
from dashtiles.config import Settings
from dashtiles.core.dashboard import DashboardSession
from dashtiles.ports.phase_table_port import PhaseTableSourcePort
from dashtiles.ports.storage_port import KeyValueStorePort
from dashtiles.ports.weather_port import WeatherServicePort
from dashtiles.utils.custom_exception import InputError, StorageError, WidgetNotFoundError
from dashtiles.utils.logging_handler import setup_logger

logger = setup_logger(__name__)

STOPWATCH_ACTIONS = ("start", "stop", "reset", "lap")


@dataclass
class Args:
    host: str = "127.0.0.1"
    port: int = 8000
    db_path: Optional[str] = None
    in_memory: bool = False


def build_storage(args: Args, settings: Settings) -> KeyValueStorePort:
    if args.in_memory:
        return InMemoryKeyValueAdapter()
    return SqliteKeyValueAdapter(args.db_path or settings.db_path)


def build_phase_source(settings: Settings) -> PhaseTableSourcePort:
    if settings.phase_table_url:
        return HttpPhaseTableSource(settings.phase_table_url, timeout=settings.http_timeout)
    return FilePhaseTableSource()


# --- APP FACTORY ---
def create_app(
    args: Args,
    settings: Optional[Settings] = None,
    storage: Optional[KeyValueStorePort] = None,
    weather_provider: Optional[WeatherServicePort] = None,
    phase_source: Optional[PhaseTableSourcePort] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store_backend = storage or build_storage(args, settings)
        session = DashboardSession(
            settings,
            store_backend,
            weather_provider or WttrAdapter(timeout=settings.http_timeout),
            phase_source or build_phase_source(settings),
        )
        app.state.session = session
        await session.start()

        yield

        # Cleanup
        session.close()
        store_backend.close()

    app = FastAPI(title="dashtiles", lifespan=lifespan)

    @app.exception_handler(WidgetNotFoundError)
    async def not_found(request: Request, exc: WidgetNotFoundError):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(InputError)
    async def bad_input(request: Request, exc: InputError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(StorageError)
    async def storage_failed(request: Request, exc: StorageError):
        logger.warning(f"Storage failure on {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"warning": "Changes are kept in memory but were not saved.", "error": str(exc)})

    def _session(request: Request) -> DashboardSession:
        return request.app.state.session

    @app.get("/tiles")
    async def tiles(request: Request):
        return _session(request).tiles()

    @app.post("/tiles/moon/refresh")
    async def refresh_moon(request: Request):
        session = _session(request)
        outcome = await session.refresh_phases()
        reading = session.refresh_moon()
        return {"fallback": outcome.is_fallback, "data": reading.to_dict()}

    @app.post("/tiles/weather/refresh")
    async def refresh_weather(request: Request):
        outcome = await _session(request).refresh_weather()
        return {"fallback": outcome.is_fallback, "data": outcome.value.to_dict()}

    @app.get("/widgets")
    async def list_widgets(request: Request):
        return [record.to_dict() for record in _session(request).store.records()]

    @app.post("/widgets")
    async def add_widget(request: Request, payload: Dict[str, Any] = Body(...)):
        record = _session(request).add_widget(RequestPrompt(payload))
        if record is None:
            return {"cancelled": True}
        return JSONResponse(status_code=201, content=record.to_dict())

    @app.delete("/widgets/{widget_id}")
    async def remove_widget(request: Request, widget_id: str):
        if not _session(request).store.remove(widget_id):
            raise WidgetNotFoundError(f"No widget with id {widget_id!r}")
        return {"removed": widget_id}

    @app.post("/widgets/{widget_id}/counter/{operation}")
    async def counter(request: Request, widget_id: str, operation: str):
        return _session(request).store.mutate(widget_id, operation).to_dict()

    @app.put("/widgets/{widget_id}/content")
    async def update_content(request: Request, widget_id: str, payload: Dict[str, Any] = Body(...)):
        content = payload.get("content")
        if not isinstance(content, str):
            raise InputError("Body needs a string 'content'")
        return _session(request).store.update_content(widget_id, content).to_dict()

    @app.post("/widgets/{widget_id}/stopwatch/{action}")
    async def stopwatch(request: Request, widget_id: str, action: str):
        if action not in STOPWATCH_ACTIONS:
            raise InputError(f"Unknown stopwatch action {action!r}")
        driver = _session(request).store.stopwatch(widget_id)
        getattr(driver, action)()
        return {"id": widget_id, **driver.get_status()}

    return app


def run_app(args: Args) -> None:
    app = create_app(args)
    try:
        uvicorn.run(app, host=args.host, port=args.port)
    except Exception as e:
        logger.error(f"error in run_app: {e}")
        raise


def main() -> None:
    default_args = Args()
    parser = argparse.ArgumentParser(description="Dashboard tiles and widgets server.")
    parser.add_argument("--host", type=str, default=default_args.host)
    parser.add_argument("--port", type=int, default=default_args.port)
    parser.add_argument("--db-path", type=str, default=default_args.db_path)
    parser.add_argument("--in-memory", action="store_true")
    parsed_args = parser.parse_args()
    run_app(Args(**vars(parsed_args)))


if __name__ == "__main__":
    logger.info("=" * 50)
    main()
