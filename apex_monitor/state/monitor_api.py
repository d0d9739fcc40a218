"""Read-only monitor APIs (pure Python and FastAPI adapters)."""
from dataclasses import asdict
from typing import Dict, List, Optional
import logging

try:
    from fastapi import APIRouter, HTTPException, Query
except ImportError as exc:  # pragma: no cover - optional dependency
    raise ImportError(
        "FastAPI is required for apex_monitor.state.monitor_api; install fastapi to use these endpoints"
    ) from exc

from .snapshot import TickSnapshot

logger = logging.getLogger(__name__)

# Fleet name -> FleetMonitor
MONITORS: Dict[str, object] = {}

router = APIRouter()


def register_monitor(name: str, monitor) -> None:
    """Register a monitor under a fleet name (lowercased)."""
    MONITORS[name.lower()] = monitor
    logger.info("Registered monitor for fleet %s", name.lower())


def unregister_monitor(name: str) -> None:
    MONITORS.pop(name.lower(), None)


def get_monitor(name: str):
    return MONITORS.get(name.lower())


# -------------------------
# Pure Python snapshot API
# -------------------------
def get_latest_snapshot(name: str) -> Optional[TickSnapshot]:
    """Return the most recent tick snapshot for a fleet (or None)."""
    monitor = get_monitor(name)
    if monitor is None:
        return None
    return monitor.snapshots.latest()


def get_snapshot_history(name: str, n: int = 100) -> List[TickSnapshot]:
    """Return up to the last n snapshots (oldest → newest)."""
    monitor = get_monitor(name)
    if monitor is None or n <= 0:
        return []
    return monitor.snapshots.history(n)


# -------------------------
# FastAPI adapter
# -------------------------
def _require_monitor(fleet: str):
    monitor = get_monitor(fleet)
    if monitor is None:
        raise HTTPException(status_code=404, detail="No monitor for fleet")
    return monitor


@router.get("/monitor/snapshot/latest")
def latest_snapshot(fleet: str = Query("apex", description="Fleet name")):
    monitor = _require_monitor(fleet)
    snapshot = monitor.snapshots.latest()
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No snapshot available")
    return asdict(snapshot)


@router.get("/monitor/snapshot/history")
def snapshot_history(
    fleet: str = Query("apex", description="Fleet name"),
    limit: int = Query(500, ge=1, le=5000),
    since_tick: Optional[int] = Query(None, ge=1, description="Only ticks at or after this one"),
):
    monitor = _require_monitor(fleet)
    return [asdict(snapshot) for snapshot in monitor.snapshots.history(limit, since_tick=since_tick)]


@router.get("/monitor/failover")
def failover_status(fleet: str = Query("apex", description="Fleet name")):
    monitor = _require_monitor(fleet)
    return monitor.controller.to_dict()


@router.get("/monitor/status")
def monitor_status(fleet: str = Query("apex", description="Fleet name")):
    monitor = _require_monitor(fleet)
    return monitor.status()


def attach_to_app(app) -> None:
    """Include monitor routes on an existing FastAPI app."""
    app.include_router(router)
