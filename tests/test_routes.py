import io
import unittest
from unittest.mock import AsyncMock, MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient
from fakeredis import FakeServer
from fakeredis.aioredis import FakeRedis
from PIL import Image

from app.routers.v1.auth import router as auth_router
from app.routers.v1.history import router as history_router
from app.routers.v1.scan import router as scan_router
from app.schemas.scan import AnalysisResult
from app.services.auth import AuthService
from app.services.camera import CameraSource
from app.services.history import HistoryStore
from app.services.image import ImageService
from app.services.orchestrator import ScanOrchestrator, SessionRegistry
from app.services.redis_manager import RedisManager


def make_jpeg() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (400, 200), (80, 160, 80)).save(buffer, format="JPEG")
    return buffer.getvalue()


class TestScanRoutes(unittest.TestCase):
    def setUp(self):
        self.app = FastAPI()
        manager = RedisManager(namespace="test")
        manager.redis = FakeRedis(server=FakeServer(), decode_responses=True)
        history_store = HistoryStore(manager)

        self.analysis_client = MagicMock()
        self.analysis_client.analyze = AsyncMock(return_value=AnalysisResult(
            condition="Healthy", recommendations=["Irrigate"], next_actions=["Retest in 2 weeks"]))

        unavailable = MagicMock()
        unavailable.isOpened.return_value = False

        def factory(identity, subject_kind, language, latitude=None, longitude=None):
            return ScanOrchestrator(
                identity=identity,
                subject_kind=subject_kind,
                language=language,
                analysis_client=self.analysis_client,
                image_service=ImageService(),
                history_store=history_store,
                camera=CameraSource(capture_factory=MagicMock(return_value=unavailable))
            )

        self.app.state.history_store = history_store
        self.app.state.auth_service = AuthService(manager, "route-secret-with-enough-length-0123456789")
        self.app.state.session_registry = SessionRegistry(factory)
        for router in (auth_router, scan_router, history_router):
            self.app.include_router(router, prefix="/api/v1")

        self.client = TestClient(self.app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def _login(self, phone: str = "555-0100") -> dict:
        response = self.client.post("/api/v1/auth/signup", json={"phone": phone, "password": "pw"})
        self.assertEqual(response.status_code, 201)
        return {"X-ACCESS-JWT": response.json()["access_token"]}

    def test_full_cycle(self):
        headers = self._login()
        response = self.client.post("/api/v1/scan/session", json={"subject_kind": "SOIL", "language": "en"},
                                    headers=headers)
        self.assertEqual(response.json()["state"], "IDLE")

        response = self.client.post("/api/v1/scan/file", files={"file": ("soil.jpg", make_jpeg(), "image/jpeg")},
                                    headers=headers)
        self.assertEqual(response.json()["state"], "CAPTURED")

        response = self.client.post("/api/v1/scan/analyze", headers=headers)
        body = response.json()
        self.assertEqual(body["state"], "RESULT_SUCCESS")
        self.assertEqual(body["result"]["condition"], "Healthy")
        self.assertIsNone(body["result"]["weather_context"])

        response = self.client.post("/api/v1/scan/save", headers=headers)
        self.assertEqual(response.json()["state"], "SAVED")
        item_id = response.json()["saved_item_id"]

        items = self.client.get("/api/v1/history", headers=headers).json()
        self.assertEqual([i["id"] for i in items], [item_id])
        self.assertEqual(items[0]["subject_kind"], "SOIL")

        self.assertEqual(self.client.delete(f"/api/v1/history/{item_id}", headers=headers).status_code, 204)
        self.assertEqual(self.client.delete(f"/api/v1/history/{item_id}", headers=headers).status_code, 204)
        self.assertEqual(self.client.get("/api/v1/history", headers=headers).json(), [])

    def test_history_is_per_user(self):
        alice = self._login("555-0100")
        bob = self._login("555-0200")
        self.client.post("/api/v1/scan/session", json={"subject_kind": "CROP"}, headers=alice)
        self.client.post("/api/v1/scan/file", files={"file": ("a.jpg", make_jpeg(), "image/jpeg")}, headers=alice)
        self.client.post("/api/v1/scan/analyze", headers=alice)
        self.client.post("/api/v1/scan/save", headers=alice)

        self.assertEqual(len(self.client.get("/api/v1/history", headers=alice).json()), 1)
        self.assertEqual(self.client.get("/api/v1/history", headers=bob).json(), [])

    def test_camera_unavailable_notice(self):
        headers = self._login()
        self.client.post("/api/v1/scan/session", json={"subject_kind": "CROP"}, headers=headers)
        body = self.client.post("/api/v1/scan/camera/start", headers=headers).json()
        self.assertEqual(body["state"], "IDLE")
        self.assertEqual(body["notice"]["name"], "CAMERA_UNAVAILABLE")

        body = self.client.post("/api/v1/scan/notice/dismiss", headers=headers).json()
        self.assertIsNone(body["notice"])

    def test_invalid_transition_is_conflict(self):
        headers = self._login()
        self.client.post("/api/v1/scan/session", json={"subject_kind": "CROP"}, headers=headers)
        response = self.client.post("/api/v1/scan/analyze", headers=headers)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"]["name"], "INVALID_TRANSITION")

    def test_requires_session(self):
        headers = self._login()
        self.assertEqual(self.client.get("/api/v1/scan/session", headers=headers).status_code, 404)

    def test_requires_auth(self):
        self.assertEqual(self.client.get("/api/v1/history").status_code, 401)
        self.assertEqual(self.client.get("/api/v1/history", headers={"X-ACCESS-JWT": "bad"}).status_code, 401)

    def test_login_and_duplicate_signup(self):
        self._login()
        response = self.client.post("/api/v1/auth/signup", json={"phone": "555-0100", "password": "pw"})
        self.assertEqual(response.status_code, 409)
        response = self.client.post("/api/v1/auth/login", json={"phone": "555-0100", "password": "pw"})
        self.assertEqual(response.status_code, 200)
        response = self.client.post("/api/v1/auth/login", json={"phone": "555-0100", "password": "wrong"})
        self.assertEqual(response.status_code, 401)

    def test_logout_closes_session(self):
        headers = self._login()
        self.client.post("/api/v1/scan/session", json={"subject_kind": "CROP"}, headers=headers)
        self.assertEqual(self.client.post("/api/v1/auth/logout", headers=headers).status_code, 204)
        self.assertEqual(self.client.get("/api/v1/scan/session", headers=headers).status_code, 404)


if __name__ == '__main__':
    unittest.main()
