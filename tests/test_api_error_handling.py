from __future__ import annotations

import sys
import unittest
from pathlib import Path
from uuid import UUID

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy.exc import DBAPIError, OperationalError

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from api.common.errors import ConflictError, ReplayConsistencyError
from api.db.locks import SeasonBusyError
from api.error_handling import register_error_handlers


class EchoPayload(BaseModel):
    name: str


def build_test_app() -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/boom")
    def boom() -> None:
        raise HTTPException(status_code=404, detail="Resource missing")

    @app.post("/echo")
    def echo(payload: EchoPayload) -> dict[str, str]:
        return {"name": payload.name}

    @app.get("/db-down")
    def db_down() -> None:
        raise OperationalError("SELECT 1", {}, OSError("connection refused"))

    @app.get("/db-query-error")
    def db_query_error() -> None:
        raise DBAPIError("INSERT INTO game ...", {}, Exception("syntax error"), False)

    @app.get("/crash")
    def crash() -> None:
        raise RuntimeError("boom")

    @app.get("/busy")
    def busy() -> None:
        raise ConflictError("Season is busy; retry shortly.")

    @app.get("/busy-season")
    def busy_season() -> None:
        raise SeasonBusyError(UUID("4aaddf8e-ca81-4347-a278-f6f7be86c6d0"))

    @app.get("/inconsistent")
    def inconsistent() -> None:
        raise ReplayConsistencyError(
            "Game references a player outside the season.",
            offending_record={"game_id": "g-1", "player_id": "p-9"},
        )

    return app


class TestApiErrorHandling(unittest.TestCase):
    def test_http_exception_uses_standard_shape(self) -> None:
        client = TestClient(build_test_app())
        response = client.get("/boom", headers={"X-Request-ID": "req-123"})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.headers.get("X-Request-ID"), "req-123")

        payload = response.json()
        self.assertEqual(payload["error_code"], "not_found")
        self.assertEqual(payload["message"], "Resource missing")
        self.assertEqual(payload["detail"], "Resource missing")
        self.assertEqual(payload["request_id"], "req-123")

    def test_validation_error_uses_standard_shape(self) -> None:
        client = TestClient(build_test_app())
        response = client.post("/echo", json={})

        self.assertEqual(response.status_code, 422)
        self.assertIn("X-Request-ID", response.headers)

        payload = response.json()
        self.assertEqual(payload["error_code"], "validation_error")
        self.assertEqual(payload["detail"], "Validation failed")
        self.assertTrue(isinstance(payload["details"], list))
        self.assertTrue(payload["request_id"])

    def test_db_errors_map_to_503(self) -> None:
        client = TestClient(build_test_app())
        for path in ("/db-down", "/db-query-error"):
            response = client.get(path)

            self.assertEqual(response.status_code, 503)
            payload = response.json()
            self.assertEqual(payload["error_code"], "service_unavailable")
            self.assertEqual(payload["detail"], "Database unavailable")
            self.assertIn("request_id", payload)

    def test_unhandled_exception_maps_to_500_standard_shape(self) -> None:
        client = TestClient(build_test_app(), raise_server_exceptions=False)
        response = client.get("/crash")

        self.assertEqual(response.status_code, 500)
        payload = response.json()
        self.assertEqual(payload["error_code"], "internal_error")
        self.assertEqual(payload["detail"], "Internal server error")
        self.assertIn("request_id", payload)

    def test_conflict_maps_to_409(self) -> None:
        client = TestClient(build_test_app())
        for path in ("/busy", "/busy-season"):
            response = client.get(path)

            self.assertEqual(response.status_code, 409)
            payload = response.json()
            self.assertEqual(payload["error_code"], "conflict")
            self.assertIn("retry", payload["detail"])

    def test_replay_inconsistency_reports_offending_record(self) -> None:
        client = TestClient(build_test_app())
        response = client.get("/inconsistent")

        self.assertEqual(response.status_code, 409)
        payload = response.json()
        self.assertEqual(payload["error_code"], "conflict")
        self.assertEqual(
            payload["details"],
            {"offending_record": {"game_id": "g-1", "player_id": "p-9"}},
        )


if __name__ == "__main__":
    unittest.main()
