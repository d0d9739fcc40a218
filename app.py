"""FastAPI bootstrap running the fleet monitor alongside its read-only API."""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from apex_monitor.config import load_config, setup_logging
from apex_monitor.monitor import FleetMonitor
from apex_monitor.state import monitor_api


def create_app(monitors=None, autostart: bool = True) -> FastAPI:
    if monitors is None:
        setup_logging()
        monitors = [FleetMonitor(load_config())]

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if autostart:
            for monitor in monitors:
                monitor.start()
        yield
        for monitor in monitors:
            monitor.stop()

    app = FastAPI(title="Apex Monitor API", version="0.1.0", lifespan=lifespan)

    for monitor in monitors:
        monitor_api.register_monitor(monitor.config.fleet_name, monitor)

    monitor_api.attach_to_app(app)

    return app


app = create_app()
