import unittest

from fastapi.testclient import TestClient
from pydantic import ValidationError

from app.app import create_app
from app.config import Settings


def make_settings(**overrides) -> Settings:
    values = dict(GEMINI_API_KEY="test-key", JWT_SECRET="app-secret-with-enough-length-0123456789")
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestAppFactory(unittest.TestCase):
    def test_defaults(self):
        settings = make_settings()
        self.assertEqual(settings.HISTORY_LIMIT, 20)
        self.assertEqual(settings.THUMBNAIL_MAX_SIZE, 150)
        self.assertEqual(settings.THUMBNAIL_QUALITY, 70)
        self.assertEqual(settings.CAMERA_JPEG_QUALITY, 80)

    def test_blank_credentials_are_rejected(self):
        with self.assertRaises(ValidationError):
            make_settings(GEMINI_API_KEY="  ")

    def test_routes_are_mounted(self):
        app = create_app(make_settings())
        paths = set(app.openapi()["paths"])
        for path in ("/api/v1/auth/login", "/api/v1/scan/session", "/api/v1/scan/save",
                     "/api/v1/history", "/api/v1/history/{item_id}", "/health"):
            self.assertIn(path, paths)

    def test_health_without_redis(self):
        client = TestClient(create_app(make_settings()))
        response = client.get("/health")
        self.assertEqual(response.json(), {"status": "healthy", "redis": "unavailable"})

    def test_default_coordinates_feed_sessions(self):
        app = create_app(make_settings(DEFAULT_LATITUDE=12.97, DEFAULT_LONGITUDE=77.59))
        session = app.state.session_registry.factory(
            identity="555-0100", subject_kind="CROP", language="en")
        self.assertEqual((session.latitude, session.longitude), (12.97, 77.59))
        self.assertEqual(session.camera.jpeg_quality, 80)


if __name__ == '__main__':
    unittest.main()
