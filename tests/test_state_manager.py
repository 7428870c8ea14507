"""
Tests for editing sessions and their persistence.

Tests cover:
- Session lifecycle (create, load from disk, list, delete)
- Diagram-only persistence and validation on load
- Layer membership surviving undo/redo
- Render frames, culling and export snapshots
- Participants
"""

import json

import pytest

from sld_engine.canvas.arrange import Alignment, Direction
from sld_engine.canvas.errors import DanglingReference, DuplicateId, LayerLocked
from sld_engine.canvas.interaction import PointerEvent
from sld_engine.canvas.state_manager import EditorSession, StateManager
from sld_engine.config import EngineConfig
from sld_engine.models.diagram_models import Position, Size


# =============================================================================
# LIFECYCLE & PERSISTENCE
# =============================================================================


class TestSessions:

    def test_create_and_get(self, state_manager):
        session_id = state_manager.create_session()
        session = state_manager.get_session(session_id)
        assert session is not None
        assert session.id == session_id
        assert session.diagram.components == {}

    def test_create_with_explicit_id_is_idempotent(self, state_manager, make_component):
        state_manager.create_session("plant-a")
        state_manager.get_session("plant-a").add_component(make_component("a"))
        assert state_manager.create_session("plant-a") == "plant-a"
        assert "a" in state_manager.get_session("plant-a").diagram.components

    def test_unknown_session(self, state_manager):
        assert state_manager.get_session("missing") is None

    def test_edits_are_persisted_and_reloaded(self, state_manager, config, make_component, make_connection):
        session_id = state_manager.create_session()
        session = state_manager.get_session(session_id)
        session.add_component(make_component("a", 0, 0, type="main_panel"))
        session.add_component(make_component("b", 100, 0, type="breaker"))
        session.add_connection(make_connection("ab", "a", "b"))
        session.selection.replace(["a"])
        session.view.set_zoom(3.0)

        reopened = StateManager(sessions_dir=state_manager.sessions_dir, config=config)
        loaded = reopened.get_session(session_id)
        assert loaded.diagram.content_equals(session.diagram)
        assert loaded.layers.layer_id_of("b") == "power_branch"
        # view and selection are not persisted
        assert loaded.selection.ids == []
        assert loaded.view.zoom == 1.0
        assert not loaded.history.can_undo()

    def test_persisted_file_holds_diagram(self, state_manager, make_component):
        session_id = state_manager.create_session()
        state_manager.get_session(session_id).add_component(make_component("a"))
        with open(state_manager.sessions_dir / f"{session_id}.json") as f:
            record = json.load(f)
        assert record["id"] == session_id
        assert list(record["diagram"]["components"]) == ["a"]
        assert "view" not in record

    def test_dangling_reference_rejected_on_load(self, state_manager):
        record = {
            "id": "broken",
            "created_at": "2024-01-01T00:00:00",
            "diagram": {
                "components": {
                    "a": {"id": "a", "type": "load", "size": {"width": 10, "height": 10}},
                },
                "connections": {
                    "ax": {"id": "ax", "from_component_id": "a", "to_component_id": "x"},
                },
            },
        }
        with open(state_manager.sessions_dir / "broken.json", "w") as f:
            json.dump(record, f)

        with pytest.raises(DanglingReference):
            state_manager.get_session("broken")

    def test_list_and_delete(self, state_manager):
        first = state_manager.create_session("one")
        second = state_manager.create_session("two")
        assert state_manager.list_sessions() == [first, second]

        assert state_manager.delete_session("one") is True
        assert state_manager.list_sessions() == ["two"]
        assert state_manager.get_session("one") is None
        assert state_manager.delete_session("one") is False


# =============================================================================
# EDITING
# =============================================================================


class TestEditing:

    def test_undo_restores_layer_membership(self, session, make_component):
        session.add_component(make_component("a"), layer_id="safety_fire")
        session.remove_component("a")
        assert session.layers.layer_id_of("a") is None

        session.undo()
        assert session.layers.layer_id_of("a") == "safety_fire"

    def test_add_to_locked_layer_rejected(self, session, make_component):
        session.layers.set_locked("comm_data", True)
        with pytest.raises(LayerLocked):
            session.add_component(make_component("a"), layer_id="comm_data")
        assert session.diagram.components == {}
        assert not session.history.can_undo()

    def test_add_to_locked_type_layer_rejected(self, session, make_component):
        session.layers.set_locked("power_main", True)
        with pytest.raises(LayerLocked):
            session.add_component(make_component("p", type="panel"))
        assert session.diagram.components == {}
        assert not session.history.can_undo()

    def test_explicit_layer_overrides_locked_type_layer(self, session, make_component):
        session.layers.set_locked("power_main", True)
        session.add_component(make_component("p", type="panel"), layer_id="power_branch")
        assert session.layers.layer_id_of("p") == "power_branch"
        assert "p" not in session.layers.get_layer("power_main").component_ids
        assert session.history.undo_depth == 1

    def test_failed_add_keeps_existing_membership(self, session, make_component):
        session.add_component(make_component("a"), layer_id="safety_fire")
        with pytest.raises(DuplicateId):
            session.add_component(make_component("a", 50, 50), layer_id="comm_data")
        assert session.layers.layer_id_of("a") == "safety_fire"
        assert session.history.undo_depth == 1

    def test_redo_restores_requested_layer(self, session, make_component):
        session.add_component(make_component("a"), layer_id="comm_data")
        session.undo()
        assert session.layers.layer_id_of("a") is None
        session.redo()
        assert session.layers.layer_id_of("a") == "comm_data"

    def test_layer_memory_dropped_with_history(self, make_component):
        session = EditorSession("short", EngineConfig(snap_to_grid=False, history_depth=2))
        session.add_component(make_component("a"), layer_id="safety_fire")
        session.add_component(make_component("b", 40, 0))
        session.remove_component("a")
        assert session.layers.detached_count == 1

        session.move_component("b", Position(x=50, y=0))
        session.move_component("b", Position(x=60, y=0))
        # the removal of "a" has fallen off the undo stack
        assert session.layers.detached_count == 0

    def test_removed_components_leave_selection(self, session, make_component):
        session.add_component(make_component("a"))
        session.selection.replace(["a"])
        session.remove_component("a")
        assert session.selection.ids == []

    def test_resize_and_property(self, session, make_component):
        session.add_component(make_component("a"))
        session.resize_component("a", Size(width=40, height=30))
        session.update_component_property("a", "rating", 225)
        component = session.diagram.components["a"]
        assert component.size == Size(width=40, height=30)
        assert component.properties["rating"] == 225

    def test_align_left(self, session, make_component):
        session.add_component(make_component("a", 10, 0))
        session.add_component(make_component("b", 50, 40, width=30))
        assert session.align(["a", "b"], Alignment.LEFT) is True
        assert session.diagram.components["b"].position == Position(x=10, y=40)
        assert session.history.undo_descriptions()[0] == "Move b to (10, 40)"

    def test_align_needs_two(self, session, make_component):
        session.add_component(make_component("a", 10, 0))
        assert session.align(["a"], Alignment.TOP) is False

    def test_distribute_horizontal(self, session, make_component):
        session.add_component(make_component("a", 0, 0))
        session.add_component(make_component("b", 15, 0))
        session.add_component(make_component("c", 100, 0))
        assert session.distribute(["a", "b", "c"], Direction.HORIZONTAL) is True
        assert session.diagram.components["b"].position == Position(x=50, y=0)

    def test_author_is_recorded_in_log(self, session, make_component, caplog):
        with caplog.at_level("INFO"):
            session.add_component(make_component("a"), author="alice")
        assert "alice: Add load a" in caplog.text


# =============================================================================
# RENDER FRAME & EXPORT
# =============================================================================


class TestSnapshots:

    def test_render_frame_contents(self, session, make_component):
        session.add_component(make_component("a", type="breaker"))
        session.selection.replace(["a"])
        frame = session.render_frame()

        assert frame.session_id == session.id
        assert frame.selection == ["a"]
        assert frame.styles["a"].layer_id == "power_branch"
        assert frame.interaction_state == "idle"
        assert frame.visible_component_ids is None
        assert len(frame.layers) == len(session.layers.layers())
        assert frame.selection_bounds == {"left": 0, "top": 0, "right": 10, "bottom": 10}
        assert len(frame.handles) == 8

    def test_render_frame_culls_to_viewport(self, session, make_component):
        session.add_component(make_component("near", 10, 10))
        session.add_component(make_component("far", 5000, 5000))
        session.add_component(make_component("hidden", 20, 20), layer_id="comm_data")
        session.layers.set_visibility("comm_data", False)

        frame = session.render_frame(viewport_width=800, viewport_height=600)
        assert frame.visible_component_ids == ["near"]

    def test_render_frame_shows_drag_preview(self, session, make_component):
        session.add_component(make_component("a"))
        session.controller.pointer_down(PointerEvent(x=5, y=5))
        session.controller.pointer_move(PointerEvent(x=25, y=45))

        frame = session.render_frame()
        assert frame.interaction_state == "dragging"
        assert frame.diagram.components["a"].position == Position(x=20, y=40)
        assert session.diagram.components["a"].position == Position(x=0, y=0)

    def test_export_snapshot(self, session, make_component):
        session.add_component(make_component("a"))
        snapshot = session.export_snapshot()
        assert snapshot.diagram.content_equals(session.diagram)
        assert "construction_grid" in snapshot.hidden_layer_ids
        assert "power_main" not in snapshot.hidden_layer_ids

    def test_fit_view(self, session, make_component):
        session.add_component(make_component("a", 0, 0, width=400, height=200))
        view = session.fit_view(1000, 1000)
        assert view.zoom == pytest.approx(2.0)


# =============================================================================
# PARTICIPANTS
# =============================================================================


class TestParticipants:

    def test_join_and_leave(self, session):
        session.join("alice")
        session.join("bob")
        session.join("alice")
        assert session.info().participants == ["alice", "bob"]
        assert session.leave("alice") is True
        assert session.leave("alice") is False
        assert session.info().participants == ["bob"]

    def test_info_counts(self, session, make_component, make_connection):
        session.add_component(make_component("a"))
        session.add_component(make_component("b", 40, 0))
        session.add_connection(make_connection("ab", "a", "b"))
        info = session.info()
        assert (info.component_count, info.connection_count) == (2, 1)
        assert info.can_undo and not info.can_redo
