"""Tests for the OFAT Engine HTTP interface."""

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from api.server import app, register_calculation, unregister_calculation, get_calculation


def ratio(p):
    return p["num"] / p["den"]


def difference(p):
    return p["a"] - p["b"]


def counted_sum(p):
    counted_sum.calls += 1
    return sum(p.values())


TEST_CALCULATIONS = {"ratio": ratio, "difference": difference, "counted_sum": counted_sum}


@pytest.fixture(autouse=True)
def calculations():
    for name, func in TEST_CALCULATIONS.items():
        register_calculation(name, func)
    counted_sum.calls = 0
    yield
    for name in TEST_CALCULATIONS:
        unregister_calculation(name)


@pytest.fixture
def client():
    return TestClient(app)


class TestInfo:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    def test_root_lists_calculations(self, client):
        body = client.get("/").json()
        assert body["status"] == "operational"
        assert {"sum", "product", "ratio"} <= set(body["calculations"])

    def test_list_calculations(self, client):
        assert "difference" in client.get("/calculations").json()["calculations"]


class TestRegistry:
    def test_register_directly(self):
        register_calculation("triple", lambda p: 3 * p["x"])
        try:
            assert get_calculation("triple")({"x": 2}) == 6
        finally:
            unregister_calculation("triple")
        with pytest.raises(HTTPException):
            get_calculation("triple")

    def test_register_non_callable(self):
        with pytest.raises(TypeError):
            register_calculation("bad", 42)

    def test_unregister_unknown_name(self):
        unregister_calculation("never-registered")


class TestAnalyzeSensitivity:
    def test_evaluation_count_matches_message(self, client):
        body = client.post("/analyze_sensitivity", json={
            "calculation": "counted_sum",
            "parameters": {"a": 1.0, "b": 2.0, "c": 3.0},
            "delta": 0.1,
        }).json()
        assert body["status"] == "completed"
        assert counted_sum.calls == 2 * 3 + 1
        assert f"across {counted_sum.calls} evaluations" in body["message"]
        assert "       a" in body["report"]

    def test_sum_scenario(self, client):
        resp = client.post("/analyze_sensitivity", json={
            "calculation": "sum",
            "parameters": {"alpha": 1.1, "beta": 0.2},
            "delta": 0.1,
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "completed"
        assert body["base"] == pytest.approx(1.3)
        assert body["cases"] == ["+10%", "-10%"]
        assert body["results"]["alpha"]["+10%"] == pytest.approx(1.41)
        assert body["results"]["beta"]["-10%"] == pytest.approx(1.28)
        assert body["impacts"]["alpha"]["-10%"] == pytest.approx(-8.4615, abs=1e-3)
        assert "+8.46%" in body["report"]

    def test_concurrent_request(self, client):
        resp = client.post("/analyze_sensitivity", json={
            "calculation": "product",
            "parameters": {"x": 2.0, "y": 5.0, "z": 1.5},
            "delta": 0.2,
            "max_workers": 3,
        })
        body = resp.json()
        assert body["status"] == "completed"
        assert body["results"]["y"]["+20%"] == pytest.approx(18.0)

    def test_unknown_calculation(self, client):
        resp = client.post("/analyze_sensitivity", json={
            "calculation": "nope", "parameters": {"a": 1.0}, "delta": 0.1,
        })
        assert resp.status_code == 404

    def test_malformed_request(self, client):
        resp = client.post("/analyze_sensitivity", json={"calculation": "sum", "parameters": {}})
        assert resp.status_code == 422

    def test_calculation_failure(self, client):
        resp = client.post("/analyze_sensitivity", json={
            "calculation": "ratio", "parameters": {"num": 1.0, "den": 0.0}, "delta": 0.1,
        })
        body = resp.json()
        assert body["status"] == "error"
        assert "division" in body["message"]

    def test_zero_base(self, client):
        resp = client.post("/analyze_sensitivity", json={
            "calculation": "difference", "parameters": {"a": 2.0, "b": 2.0}, "delta": 0.1,
        })
        body = resp.json()
        assert body["status"] == "error"
        assert "zero or undefined" in body["message"]
