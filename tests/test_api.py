"""
Tests for the HTTP API.

Runs the FastAPI app (including its lifespan) with ``TestClient`` against a
temporary sessions directory.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from sld_engine import server
from sld_engine.api import diagram_routes
from sld_engine.services.calculation_client import CalculationClient


@pytest.fixture
def client(tmp_path, monkeypatch):
    test_config = server.config.model_copy(update={
        "sessions_dir": str(tmp_path / "sessions"),
        "snap_to_grid": False,
        "catalog_api_url": None,
        "calculation_api_url": None,
    })
    monkeypatch.setattr(server, "config", test_config)
    with TestClient(server.app) as test_client:
        yield test_client


@pytest.fixture
def session_id(client):
    return client.post("/api/canvas/session").json()["session_id"]


def add(client, session_id, component_id, x=0, y=0, **extra):
    body = {
        "id": component_id,
        "type": extra.pop("type", "load"),
        "position": {"x": x, "y": y},
        "size": {"width": 10, "height": 10},
        **extra,
    }
    return client.post(f"/api/diagram/{session_id}/components", json=body)


# =============================================================================
# SERVICE
# =============================================================================


class TestService:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_api_info(self, client):
        info = client.get("/api/info").json()
        assert "select" in info["tools"]
        assert any(t["template_id"] == "main_panel" for t in info["templates"])


# =============================================================================
# SESSIONS
# =============================================================================


class TestSessions:

    def test_create_and_describe(self, client, session_id):
        info = client.get(f"/api/canvas/session/{session_id}").json()
        assert info["session_id"] == session_id
        assert info["component_count"] == 0
        assert session_id in client.get("/api/canvas/sessions").json()

    def test_create_with_id(self, client):
        response = client.post("/api/canvas/session", json={"session_id": "plant-7"})
        assert response.json()["session_id"] == "plant-7"

    def test_unknown_session_is_404(self, client):
        assert client.get("/api/canvas/session/nope").status_code == 404
        assert client.get("/api/diagram/nope").status_code == 404
        assert client.get("/api/layers/nope").status_code == 404

    def test_delete(self, client, session_id):
        assert client.delete(f"/api/canvas/session/{session_id}").status_code == 200
        assert client.get(f"/api/canvas/session/{session_id}").status_code == 404

    def test_participants(self, client, session_id):
        client.post(f"/api/canvas/participants/{session_id}", json={"name": "alice"})
        info = client.get(f"/api/canvas/session/{session_id}").json()
        assert info["participants"] == ["alice"]
        assert client.delete(f"/api/canvas/participants/{session_id}/alice").status_code == 200
        assert client.delete(f"/api/canvas/participants/{session_id}/alice").status_code == 404


# =============================================================================
# DIAGRAM EDITING
# =============================================================================


class TestDiagram:

    def test_add_move_undo_redo(self, client, session_id):
        assert add(client, session_id, "a").status_code == 200
        moved = client.put(f"/api/diagram/{session_id}/components/a/position", json={"x": 40, "y": 60})
        assert moved.json()["position"] == {"x": 40, "y": 60}

        history = client.post(f"/api/diagram/{session_id}/undo").json()
        assert history["changed"] is True
        assert history["can_redo"] is True
        diagram = client.get(f"/api/diagram/{session_id}").json()
        assert diagram["components"]["a"]["position"] == {"x": 0, "y": 0}

        client.post(f"/api/diagram/{session_id}/redo")
        diagram = client.get(f"/api/diagram/{session_id}").json()
        assert diagram["components"]["a"]["position"] == {"x": 40, "y": 60}

    def test_duplicate_component_is_409(self, client, session_id):
        add(client, session_id, "a")
        response = add(client, session_id, "a", 50, 50)
        assert response.status_code == 409
        assert "already exists" in response.json()["detail"]

    def test_zero_size_is_422(self, client, session_id):
        response = client.post(f"/api/diagram/{session_id}/components", json={
            "id": "flat", "type": "load", "size": {"width": 0, "height": 10},
        })
        assert response.status_code == 422

    def test_dangling_connection_is_422(self, client, session_id):
        add(client, session_id, "a")
        response = client.post(f"/api/diagram/{session_id}/connections", json={
            "id": "ax", "from_component_id": "a", "to_component_id": "x",
        })
        assert response.status_code == 422

    def test_remove_component_cascades(self, client, session_id):
        add(client, session_id, "a")
        add(client, session_id, "b", 40, 0)
        client.post(f"/api/diagram/{session_id}/connections", json={
            "id": "ab", "from_component_id": "a", "to_component_id": "b",
        })
        assert client.delete(f"/api/diagram/{session_id}/components/a").status_code == 200
        assert client.get(f"/api/diagram/{session_id}").json()["connections"] == {}

    def test_locked_layer_is_423(self, client, session_id):
        add(client, session_id, "a", layer_id="power_branch")
        client.put(f"/api/layers/{session_id}/power_branch/lock", json={"locked": True})
        response = client.put(f"/api/diagram/{session_id}/components/a/position", json={"x": 5, "y": 5})
        assert response.status_code == 423

    def test_add_to_locked_type_layer_is_423(self, client, session_id):
        client.put(f"/api/layers/{session_id}/power_main/lock", json={"locked": True})
        assert add(client, session_id, "p", type="panel").status_code == 423
        assert client.get(f"/api/diagram/{session_id}").json()["components"] == {}

    def test_place_local_template(self, client, session_id):
        response = client.post(f"/api/diagram/{session_id}/components/from-template", json={
            "template_id": "circuit_breaker", "id": "cb1", "position": {"x": 100, "y": 40},
        })
        body = response.json()
        assert response.status_code == 200
        assert body["component"]["type"] == "breaker"
        assert body["component"]["size"] == {"width": 60, "height": 40}
        assert body["layer_id"] == "power_branch"

    def test_place_unknown_template_is_404(self, client, session_id):
        response = client.post(f"/api/diagram/{session_id}/components/from-template", json={
            "template_id": "no_such_symbol",
        })
        assert response.status_code == 404

    def test_place_template_with_load_values(self, client, session_id, monkeypatch):
        calculator = CalculationClient(
            base_url="http://calc.test",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"values": {"calculated_load_va": 4800}})
            ),
        )
        monkeypatch.setattr(diagram_routes, "calculation_client", calculator)

        response = client.post(f"/api/diagram/{session_id}/components/from-template", json={
            "template_id": "main_panel", "id": "mp", "calculate_loads": True,
        })
        properties = response.json()["component"]["properties"]
        assert properties["calculated_load_va"] == 4800
        assert properties["rating"] == 200

    def test_align(self, client, session_id):
        add(client, session_id, "a", 10, 0)
        add(client, session_id, "b", 60, 30)
        response = client.post(f"/api/diagram/{session_id}/align", json={
            "component_ids": ["a", "b"], "alignment": "top",
        })
        assert response.json()["changed"] is True
        diagram = client.get(f"/api/diagram/{session_id}").json()
        assert diagram["components"]["b"]["position"]["y"] == 0


# =============================================================================
# INTERACTION & RENDERING
# =============================================================================


class TestInteraction:

    def test_drag_commits_one_command(self, client, session_id):
        add(client, session_id, "a")
        base = f"/api/interaction/{session_id}/pointer"

        assert client.post(f"{base}/down", json={"x": 5, "y": 5}).json()["state"] == "dragging"
        client.post(f"{base}/move", json={"x": 25, "y": 45})

        frame = client.get(f"/api/canvas/frame/{session_id}").json()
        assert frame["diagram"]["components"]["a"]["position"] == {"x": 20, "y": 40}

        result = client.post(f"{base}/up", json={"x": 25, "y": 45}).json()
        assert result["state"] == "idle"
        assert result["committed"] == "Move a to (20, 40)"

        history = client.get(f"/api/diagram/{session_id}/history").json()
        assert history["undo"][0] == "Move a to (20, 40)"

    def test_rubberband_and_delete_selection(self, client, session_id):
        add(client, session_id, "a")
        add(client, session_id, "b", 30, 0)
        base = f"/api/interaction/{session_id}"

        client.post(f"{base}/pointer/down", json={"x": 100, "y": 100})
        result = client.post(f"{base}/pointer/up", json={"x": -5, "y": -5}).json()
        assert sorted(result["selection"]) == ["a", "b"]

        client.post(f"{base}/delete-selection")
        assert client.get(f"/api/diagram/{session_id}").json()["components"] == {}

    def test_tool_switch(self, client, session_id):
        response = client.put(f"/api/interaction/{session_id}/tool", json={"tool": "pan"})
        assert response.json()["tool"] == "pan"
        assert client.put(f"/api/interaction/{session_id}/tool", json={"tool": "lasso"}).status_code == 422

    def test_view_zoom_and_pan(self, client, session_id):
        view = client.post(f"/api/canvas/view/{session_id}/zoom", json={"action": "set", "zoom": 50}).json()
        assert view["zoom"] == 10.0
        view = client.post(f"/api/canvas/view/{session_id}/pan", json={"dx": 100, "dy": 0}).json()
        assert view["pan"]["x"] == pytest.approx(-10.0)

    def test_export(self, client, session_id):
        add(client, session_id, "a")
        snapshot = client.get(f"/api/canvas/export/{session_id}").json()
        assert list(snapshot["diagram"]["components"]) == ["a"]
        assert "zoom" in snapshot["view"]


# =============================================================================
# LAYERS
# =============================================================================


class TestLayers:

    def test_list_layers(self, client, session_id):
        layers = client.get(f"/api/layers/{session_id}").json()
        assert layers[0]["id"] == "reference_background"
        assert any(layer["id"] == "power_main" for layer in layers)

    def test_create_assign_and_delete(self, client, session_id):
        add(client, session_id, "a")
        created = client.post(f"/api/layers/{session_id}", json={"name": "Solar", "id": "solar"})
        assert created.status_code == 200

        client.post(f"/api/layers/{session_id}/solar/components", json={"component_id": "a"})
        assert client.delete(f"/api/layers/{session_id}/solar").status_code == 409

        response = client.delete(f"/api/layers/{session_id}/solar", params={"force": True})
        assert response.json()["moved_component_ids"] == ["a"]

    def test_default_layer_delete_is_409(self, client, session_id):
        assert client.delete(f"/api/layers/{session_id}/power_main", params={"force": True}).status_code == 409

    def test_unknown_layer_is_404(self, client, session_id):
        assert client.put(f"/api/layers/{session_id}/nope/visibility", json={"visible": False}).status_code == 404

    def test_update_layer(self, client, session_id):
        response = client.put(f"/api/layers/{session_id}/power_branch", json={
            "name": "Branch", "stroke_width": 4, "line_type": "dashed",
        })
        assert response.status_code == 200
        layer = response.json()
        assert (layer["name"], layer["stroke_width"], layer["line_type"]) == ("Branch", 4, "dashed")
        assert layer["color"] == "#ea580c"

    def test_update_layer_rejects_zero_stroke(self, client, session_id):
        response = client.put(f"/api/layers/{session_id}/power_branch", json={"stroke_width": 0})
        assert response.status_code == 422

    def test_update_unknown_layer_is_404(self, client, session_id):
        assert client.put(f"/api/layers/{session_id}/nope", json={"name": "Nope"}).status_code == 404
