"""
Tests for pure diagram operations.

Tests cover:
- Id uniqueness and size validation
- Connection endpoint checks (no dangling references)
- Cascade delete of touching connections
- Inputs left untouched by every operation
"""

import pytest

from sld_engine.canvas import diagram_ops as ops
from sld_engine.canvas.errors import DanglingReference, DuplicateId, InvalidGeometry, NotFound
from sld_engine.models.diagram_models import Diagram, Position, Size


@pytest.fixture
def three_components(make_component, make_connection):
    diagram = ops.new_diagram()
    for cid, x in (("a", 0), ("b", 50), ("c", 100)):
        diagram = ops.add_component(diagram, make_component(cid, x, 0))
    diagram = ops.add_connection(diagram, make_connection("ab", "a", "b"))
    diagram = ops.add_connection(diagram, make_connection("bc", "b", "c"))
    diagram = ops.add_connection(diagram, make_connection("ac", "a", "c"))
    return diagram


# =============================================================================
# COMPONENTS
# =============================================================================


class TestComponents:

    def test_add_returns_new_value(self, make_component):
        empty = ops.new_diagram()
        diagram = ops.add_component(empty, make_component("a"))
        assert "a" in diagram.components
        assert empty.components == {}

    def test_duplicate_id_rejected(self, make_component):
        diagram = ops.add_component(ops.new_diagram(), make_component("a"))
        with pytest.raises(DuplicateId):
            ops.add_component(diagram, make_component("a", 40, 40))

    @pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (0, 0)])
    def test_non_positive_size_rejected(self, make_component, width, height):
        with pytest.raises(InvalidGeometry):
            ops.add_component(ops.new_diagram(), make_component("a", width=width, height=height))

    def test_insert_at_index(self, make_component):
        diagram = ops.new_diagram()
        for cid in ("a", "b", "c"):
            diagram = ops.add_component(diagram, make_component(cid))
        diagram = ops.add_component(diagram, make_component("x"), index=1)
        assert list(diagram.components) == ["a", "x", "b", "c"]

    def test_move_and_resize(self, make_component):
        diagram = ops.add_component(ops.new_diagram(), make_component("a"))
        diagram = ops.move_component(diagram, "a", Position(x=40, y=60))
        diagram = ops.resize_component(diagram, "a", Size(width=30, height=20))
        component = diagram.components["a"]
        assert component.position == Position(x=40, y=60)
        assert component.size == Size(width=30, height=20)

    def test_move_unknown_component(self):
        with pytest.raises(NotFound):
            ops.move_component(ops.new_diagram(), "ghost", Position())

    def test_property_update_and_removal(self, make_component):
        diagram = ops.add_component(ops.new_diagram(), make_component("a", rating=100))
        diagram = ops.update_component_property(diagram, "a", "rating", 200)
        assert diagram.components["a"].properties == {"rating": 200}
        diagram = ops.remove_component_property(diagram, "a", "rating")
        assert diagram.components["a"].properties == {}

    def test_modified_timestamp_advances(self, make_component):
        empty = ops.new_diagram()
        diagram = ops.add_component(empty, make_component("a"))
        assert diagram.metadata.modified >= empty.metadata.modified
        assert diagram.metadata.created == empty.metadata.created


# =============================================================================
# CONNECTIONS
# =============================================================================


class TestConnections:

    def test_missing_endpoint_rejected(self, make_component, make_connection):
        diagram = ops.add_component(ops.new_diagram(), make_component("a"))
        with pytest.raises(DanglingReference) as exc_info:
            ops.add_connection(diagram, make_connection("ax", "a", "x"))
        assert exc_info.value.missing_ids == ["x"]

    def test_duplicate_connection_id(self, three_components, make_connection):
        with pytest.raises(DuplicateId):
            ops.add_connection(three_components, make_connection("ab", "b", "c"))

    def test_remove_unknown_connection(self, three_components):
        with pytest.raises(NotFound):
            ops.remove_connection(three_components, "zz")

    def test_connections_touching_keeps_indices(self, three_components):
        touching = ops.connections_touching(three_components, "a")
        assert [(index, c.id) for index, c in touching] == [(0, "ab"), (2, "ac")]


# =============================================================================
# CASCADE DELETE
# =============================================================================


class TestCascadeDelete:

    def test_removing_component_removes_its_connections(self, three_components):
        diagram = ops.remove_component(three_components, "b")
        assert list(diagram.components) == ["a", "c"]
        assert list(diagram.connections) == ["ac"]

    def test_result_has_no_dangling_references(self, three_components):
        for cid in ("a", "b", "c"):
            ops.validate_diagram(ops.remove_component(three_components, cid))

    def test_input_untouched(self, three_components):
        ops.remove_component(three_components, "b")
        assert len(three_components.components) == 3
        assert len(three_components.connections) == 3


class TestValidateDiagram:

    def test_dangling_reference_detected(self, make_component, make_connection):
        diagram = Diagram(
            components={"a": make_component("a")},
            connections={"ab": make_connection("ab", "a", "b")},
        )
        with pytest.raises(DanglingReference):
            ops.validate_diagram(diagram)
