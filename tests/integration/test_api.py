"""
stv-gateway: HTTP surface integration tests

File: tests/integration/test_api.py

Purpose
- Exercise ``/compute``, ``/config`` and ``/health`` through the FastAPI app
  with ``TestClient`` and a stand-in engine process.

What this test file should cover
- Every ``/compute`` outcome is HTTP 200 with a ``success``/``error`` envelope.
- Malformed bodies degrade to ``UnknownError``.
- ``/config`` exposes limits with ``UNLIMITED`` as -1.
"""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from stv_gateway.api.app import create_app
from stv_gateway.config import GatewaySettings, default_config, merge_config
from stv_gateway.constants import UNLIMITED

ENGINE_SCRIPT = textwrap.dedent(
    """
    import sys
    import time

    if sys.argv[1] == "hang":
        time.sleep(60)
    print(" ".join(sys.argv[1:]))
    """
)


def _settings(tmp_path: Path, *extra_args: str, timeout: float = 10.0) -> GatewaySettings:
    script = tmp_path / "engine.py"
    script.write_text(ENGINE_SCRIPT, encoding="utf-8")
    config = merge_config(
        default_config(),
        {
            "engine": {
                "command": [sys.executable, str(script), *extra_args],
                "working_dir": str(tmp_path),
                "max_execution_time_seconds": timeout,
            },
            "parameterized_models": {"castles": {"max": {"life": UNLIMITED}}},
        },
    )
    return GatewaySettings.from_config(config)


@pytest.fixture
def client(tmp_path: Path) -> TestClient:
    return TestClient(create_app(_settings(tmp_path)))


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_config_exposes_limits(client: TestClient) -> None:
    payload = client.get("/config").json()

    assert payload["unlimited"] == UNLIMITED
    assert payload["parameterizedModels"]["castles"]["max"]["life"] == UNLIMITED
    assert payload["parameterizedModels"]["tianJi"] == {"min": {"horses": 1}, "max": {"horses": 4}}
    assert payload["mappingFile"]["maxNumberOfMappings"] == 100
    assert "command" not in payload


def test_range_error_names_a_field_listed_by_config(client: TestClient) -> None:
    limits = client.get("/config").json()["parameterizedModels"]["bridgeEndplay"]

    response = client.post(
        "/compute",
        json={
            "type": "dominoDfs",
            "modelParameters": {"type": "bridgeEndplay", "deckSize": 99, "cardsInHand": 2},
            "heuristic": "basic",
        },
    )

    error = response.json()["error"]
    assert error["type"] == "ParameterRangeError"
    assert error["parameterName"] == "deckSize"
    assert error["parameterName"] in limits["max"]
    assert error["max"] == limits["max"][error["parameterName"]]
    assert error["min"] == limits["min"][error["parameterName"]]


def test_compute_success(client: TestClient) -> None:
    response = client.post(
        "/compute",
        json={
            "type": "dominoDfs",
            "modelParameters": {"type": "bridgeEndplay", "deckSize": 4, "cardsInHand": 2},
            "heuristic": "basic",
        },
    )

    assert response.status_code == 200
    assert response.json() == {"status": "success", "data": "bridge domino 4 2 0"}


def test_compute_unlimited_bound_accepts_large_value(client: TestClient) -> None:
    response = client.post(
        "/compute",
        json={
            "type": "modelGeneration",
            "modelParameters": {
                "type": "castles",
                "castle1Size": 1,
                "castle2Size": 1,
                "castle3Size": 1,
                "life": 500,
            },
        },
    )

    assert response.json() == {"status": "success", "data": "castles run 1 1 1 500"}


def test_compute_validation_error(client: TestClient) -> None:
    response = client.post(
        "/compute",
        json={
            "type": "modelGeneration",
            "modelParameters": {"type": "file", "modelString": "Agent A[1]:\nt: -> q1\n"},
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "status": "error",
        "error": {"type": "FileFormatError", "fileId": "model"},
    }


def test_compute_malformed_action(client: TestClient) -> None:
    response = client.post("/compute", json={"type": "lowerApproximation"})

    body = response.json()
    assert response.status_code == 200
    assert body["status"] == "error"
    assert body["error"]["type"] == "UnknownError"
    assert "modelParameters" in body["error"]["extra"]


def test_compute_body_not_json(client: TestClient) -> None:
    response = client.post(
        "/compute", content=b"{not json", headers={"content-type": "application/json"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "status": "error",
        "error": {"type": "UnknownError", "extra": "request body is not valid JSON"},
    }


@pytest.mark.slow
def test_compute_timeout_envelope(tmp_path: Path) -> None:
    client = TestClient(create_app(_settings(tmp_path, "hang", timeout=1.0)))

    response = client.post(
        "/compute",
        json={"type": "modelGeneration", "modelParameters": {"type": "tianJi", "horses": 1}},
    )

    assert response.status_code == 200
    assert response.json() == {
        "status": "error",
        "error": {"type": "MaxExecutionTimeExceededError"},
    }
