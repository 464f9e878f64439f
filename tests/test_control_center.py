import unittest

from fastapi.testclient import TestClient

from agent_runtime import __version__
from agent_runtime.app_container import build_runtime
from agent_runtime.config import RuntimeConfig
from agent_runtime.control_center.app import create_app
from agent_runtime.events.event_bus import EventLog
from agent_runtime.tools.base import Task, ToolRegistry


class _UppercaseOrchestrator:
    mode = "scripted"

    def __init__(self):
        self.registry = ToolRegistry(["echo"])
        self.event_log = EventLog(capacity=8)

    async def start(self):
        return None

    async def stop(self):
        return None

    async def handle_task(self, task: Task) -> str:
        self.event_log.publish("task_received", agent=task.agent, channel=task.channel)
        return task.text.upper()

    def events(self):
        return self.event_log.snapshot()


class TestControlCenter(unittest.TestCase):
    def setUp(self):
        self.runtime = build_runtime(RuntimeConfig(mode="loop", allowed_tools=("echo", "tools.list")))
        self.client = TestClient(create_app(self.runtime))

    def test_health(self):
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["status"], "ok")
        self.assertEqual(data["version"], __version__)
        self.assertEqual(data["mode"], "loop")

    def test_basic_mode_is_reported(self):
        client = TestClient(create_app(build_runtime(RuntimeConfig(mode="basic"))))
        self.assertEqual(client.get("/health").json()["mode"], "basic")

    def test_any_orchestrator_can_be_served(self):
        client = TestClient(create_app(_UppercaseOrchestrator()))
        self.assertEqual(client.get("/health").json()["mode"], "scripted")
        self.assertEqual(client.post("/api/tasks", json={"text": "hi"}).json(), {"reply": "HI"})
        self.assertEqual(client.get("/api/runtime/tools").json(), {"registered": [], "allowed": []})
        self.assertEqual(len(client.get("/api/runtime/events").json()), 1)

    def test_tools(self):
        data = self.client.get("/api/runtime/tools").json()
        self.assertEqual(data["allowed"], ["echo", "tools.list"])
        self.assertIn("file.read", data["registered"])

    def test_task_round_trip_and_events(self):
        resp = self.client.post("/api/tasks", json={"text": "tool echo over http", "agent": "web"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"reply": "over http"})

        events = self.client.get("/api/runtime/events").json()
        self.assertEqual([event["kind"] for event in events], ["task_received", "tool_result", "step_reply"])
        self.assertEqual(events[0]["agent"], "web")
        self.assertEqual(events[0]["channel"], "control_center")

    def test_events_limit(self):
        for _ in range(3):
            self.client.post("/api/tasks", json={"text": "tool echo x"})
        events = self.client.get("/api/runtime/events", params={"limit": 2}).json()
        self.assertEqual(len(events), 2)
        self.assertEqual(events[-1]["kind"], "step_reply")

    def test_blank_task_is_rejected(self):
        resp = self.client.post("/api/tasks", json={"text": "   "})
        self.assertEqual(resp.status_code, 400)

    def test_missing_text_is_validation_error(self):
        resp = self.client.post("/api/tasks", json={"agent": "x"})
        self.assertEqual(resp.status_code, 422)


if __name__ == "__main__":
    unittest.main()
