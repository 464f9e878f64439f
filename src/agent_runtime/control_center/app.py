from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from agent_runtime import __version__
from agent_runtime.domain.contracts import Orchestrator
from agent_runtime.events.event_bus import Event
from agent_runtime.tools.base import Task

MAX_EVENTS_LIMIT = 1000


class TaskRequest(BaseModel):
    text: str
    agent: str = "default"
    channel: str = "control_center"
    metadata: Dict[str, str] = {}


def _event_to_dict(event: Event) -> Dict[str, Any]:
    return {
        "time": event.time.isoformat(),
        "kind": event.kind,
        "agent": event.agent,
        "tool": event.tool,
        "channel": event.channel,
        "message": event.message,
    }


def create_app(runtime: Orchestrator) -> FastAPI:
    app = FastAPI(title="Agent Runtime Control Center", version=__version__)

    @app.on_event("startup")
    async def _startup_runtime() -> None:
        await runtime.start()

    @app.on_event("shutdown")
    async def _shutdown_runtime() -> None:
        await runtime.stop()

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {
            "status": "ok",
            "version": __version__,
            "mode": runtime.mode,
            "events": len(runtime.event_log),
        }

    @app.get("/api/runtime/tools")
    async def api_runtime_tools() -> Dict[str, List[str]]:
        return {
            "registered": runtime.registry.names(),
            "allowed": runtime.registry.list_allowed(),
        }

    @app.get("/api/runtime/events")
    async def api_runtime_events(limit: int = 100) -> List[Dict[str, Any]]:
        events = runtime.events()
        limit = max(1, min(limit, MAX_EVENTS_LIMIT))
        return [_event_to_dict(event) for event in events[-limit:]]

    @app.post("/api/tasks")
    async def api_tasks(req: TaskRequest) -> Dict[str, str]:
        if not req.text.strip():
            raise HTTPException(status_code=400, detail="text is required")
        task = Task(agent=req.agent, text=req.text, channel=req.channel, metadata=dict(req.metadata))
        reply = await runtime.handle_task(task)
        return {"reply": reply}

    return app
