import unittest

from fastapi.testclient import TestClient

from dashtiles.adapters.phase_table_adapters.file_adapter import FilePhaseTableSource
from dashtiles.config import Settings
from dashtiles.main.fastapi_main import Args, create_app

from fakes import FlakyStorage, StaticWeather


class TestDashboardApi(unittest.TestCase):
    def setUp(self) -> None:
        self.storage = FlakyStorage()
        app = create_app(
            Args(in_memory=True),
            settings=Settings(weather_location="Moscow"),
            storage=self.storage,
            weather_provider=StaticWeather(),
            phase_source=FilePhaseTableSource(),
        )
        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)
        self.session = app.state.session

    def test_tiles(self) -> None:
        tiles = self.client.get("/tiles").json()
        self.assertEqual([t["id"] for t in tiles], ["weather", "time", "moon"])
        refreshed = self.client.post("/tiles/weather/refresh").json()
        self.assertEqual(refreshed, {"fallback": False, "data": {"temperature": "5°C", "description": "Overcast"}})
        moon = self.client.post("/tiles/moon/refresh").json()
        self.assertFalse(moon["fallback"])
        self.assertIn("phaseName", moon["data"])

    def test_widget_lifecycle(self) -> None:
        created = self.client.post("/widgets", json={"type": "counter", "title": "Cups"})
        self.assertEqual(created.status_code, 201)
        widget_id = created.json()["id"]

        self.client.post(f"/widgets/{widget_id}/counter/increment")
        body = self.client.post(f"/widgets/{widget_id}/counter/increment").json()
        self.assertEqual(body["data"]["value"], 2)
        self.assertEqual(self.client.post(f"/widgets/{widget_id}/counter/explode").status_code, 400)

        self.assertEqual(len(self.client.get("/widgets").json()), 1)
        self.assertEqual(self.client.delete(f"/widgets/{widget_id}").status_code, 200)
        self.assertEqual(self.client.delete(f"/widgets/{widget_id}").status_code, 404)
        self.assertEqual(self.client.get("/widgets").json(), [])

    def test_cancelled_prompt_creates_nothing(self) -> None:
        body = self.client.post("/widgets", json={"cancelled": True}).json()
        self.assertEqual(body, {"cancelled": True})
        self.assertEqual(self.client.get("/widgets").json(), [])
        self.assertEqual(self.client.post("/widgets", json={"type": "gauge"}).status_code, 400)

    def test_notes_content(self) -> None:
        widget_id = self.client.post("/widgets", json={"type": "notes", "content": "a"}).json()["id"]
        body = self.client.put(f"/widgets/{widget_id}/content", json={"content": "b"}).json()
        self.assertEqual(body["data"]["content"], "b")
        self.assertEqual(self.client.put(f"/widgets/{widget_id}/content", json={"content": 3}).status_code, 400)

    def test_stopwatch_actions(self) -> None:
        widget_id = self.client.post("/widgets", json={"type": "stopwatch"}).json()["id"]
        started = self.client.post(f"/widgets/{widget_id}/stopwatch/start").json()
        self.assertTrue(started["is_running"])
        lap = self.client.post(f"/widgets/{widget_id}/stopwatch/lap").json()
        self.assertEqual(len(lap["laps"]), 1)
        stopped = self.client.post(f"/widgets/{widget_id}/stopwatch/stop").json()
        self.assertFalse(stopped["is_running"])
        reset = self.client.post(f"/widgets/{widget_id}/stopwatch/reset").json()
        self.assertEqual(reset["elapsed_ms"], 0)
        self.assertEqual(reset["laps"], [])
        self.assertEqual(self.client.post(f"/widgets/{widget_id}/stopwatch/fly").status_code, 400)
        self.assertEqual(self.client.post("/widgets/missing/stopwatch/start").status_code, 404)

    def test_storage_failure_is_503_and_memory_kept(self) -> None:
        widget_id = self.client.post("/widgets", json={"type": "counter"}).json()["id"]
        self.storage.failing = True
        response = self.client.post(f"/widgets/{widget_id}/counter/increment")
        self.assertEqual(response.status_code, 503)
        self.assertIn("warning", response.json())
        self.assertEqual(self.client.get("/widgets").json()[0]["data"]["value"], 1)

    def test_shutdown_cancels_jobs(self) -> None:
        widget_id = self.client.post("/widgets", json={"type": "stopwatch"}).json()["id"]
        self.client.post(f"/widgets/{widget_id}/stopwatch/start")
        self.client.__exit__(None, None, None)
        self.assertTrue(self.session.closed)
        self.assertEqual(self.session.engine.active_keys(), [])


if __name__ == "__main__":
    unittest.main()
