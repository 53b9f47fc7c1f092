from fastapi.testclient import TestClient

from boidsim.app.server import app, controller


def _client() -> TestClient:
    # no context manager: the background loop stays off and the system only moves on request
    return TestClient(app)


def test_status_reports_population():
    response = _client().get("/api/status")

    assert response.status_code == 200
    body = response.json()
    assert body["population"] == controller.system.num_particles()
    assert "scattering" in body


def test_params_round_trip_and_validation():
    client = _client()
    original = client.get("/api/params").json()

    updated = client.post("/api/params", json={"view_range": original["view_range"] + 5})
    assert updated.status_code == 200
    assert updated.json()["view_range"] == original["view_range"] + 5

    rejected = client.post("/api/params", json={"scatter_chance": 3})
    assert rejected.status_code == 400
    assert "scatter_chance" in rejected.json()["error"]

    client.post("/api/params", json={"view_range": original["view_range"]})


def test_population_and_spawn_routes():
    client = _client()

    cleared = client.post("/api/population", json={"action": "clear"})
    assert cleared.json() == {"population": 0}

    populated = client.post("/api/population", json={"action": "populate", "count": 12})
    assert populated.json() == {"population": 12}

    spawned = client.post("/api/spawn/bouncy", json={"x": 20, "y": 30})
    assert spawned.json() == {"population": 13}

    outside = client.post("/api/spawn/bouncy", json={"x": -20, "y": 30})
    assert outside.status_code == 400
    missing = client.post("/api/spawn/bouncy", json={"x": 20})
    assert missing.status_code == 400
    unknown = client.post("/api/population", json={"action": "explode"})
    assert unknown.status_code == 400


def test_slow_motion_toggle_route():
    client = _client()
    first = client.post("/api/control/slowmo").json()["time_scale"]
    second = client.post("/api/control/slowmo").json()["time_scale"]

    assert {first, second} == {1.0, 0.25}


def test_stop_and_start_routes():
    client = _client()
    assert client.post("/api/control/stop").json() == {"running": False}
    assert client.post("/api/control/start").json() == {"running": True}
    client.post("/api/control/stop")


def test_population_above_max_population_is_rejected():
    client = _client()
    client.post("/api/population", json={"action": "populate", "count": 5})

    huge = client.post("/api/population", json={"action": "populate", "count": 10**9})
    assert huge.status_code == 400
    assert "max_population" in huge.json()["error"]

    negative = client.post("/api/population", json={"action": "add", "count": -3})
    assert negative.status_code == 400
    assert client.get("/api/status").json()["population"] == 5


def _next_reply(websocket) -> dict:
    while True:
        message = websocket.receive_json()
        if message["type"] != "snapshot":
            return message


def test_websocket_params_message_and_errors():
    client = _client()
    original = client.get("/api/params").json()["min_distance"]

    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"type": "params", "values": {"min_distance": original + 1}})
        reply = _next_reply(websocket)
        assert reply["type"] == "params"
        assert reply["params"]["min_distance"] == original + 1

        websocket.send_text("not json")
        assert _next_reply(websocket)["type"] == "error"

    client.post("/api/params", json={"min_distance": original})
