"""
Tests for canvas view state (zoom, pan, grid) and selection state.
"""

import pytest

from sld_engine.canvas.errors import InvalidGeometry
from sld_engine.canvas.geometry import Rect, screen_to_world
from sld_engine.models.diagram_models import Position
from sld_engine.models.view_models import CanvasViewState, SelectionState


class TestZoom:

    @pytest.mark.parametrize("requested,expected", [(0.01, 0.1), (2.5, 2.5), (50, 10.0)])
    def test_set_zoom_clamped(self, requested, expected):
        view = CanvasViewState()
        assert view.set_zoom(requested) == expected

    @pytest.mark.parametrize("bad", [0, -1.5])
    def test_non_positive_zoom_rejected(self, bad):
        view = CanvasViewState()
        with pytest.raises(InvalidGeometry):
            view.set_zoom(bad)
        assert view.zoom == 1.0

    def test_zoom_at_keeps_point_under_cursor(self):
        view = CanvasViewState(pan=Position(x=15, y=-30))
        cursor = Position(x=320, y=240)
        anchor = screen_to_world(cursor, view)

        view.zoom_in(cursor)
        after = screen_to_world(cursor, view)
        assert view.zoom == pytest.approx(1.2)
        assert after.x == pytest.approx(anchor.x)
        assert after.y == pytest.approx(anchor.y)

    def test_zoom_out_is_inverse_of_zoom_in(self):
        view = CanvasViewState()
        view.zoom_in(Position(x=100, y=100))
        view.zoom_out(Position(x=100, y=100))
        assert view.zoom == pytest.approx(1.0)
        assert view.pan.x == pytest.approx(0.0)

    def test_zoom_to_fit(self):
        view = CanvasViewState()
        bounds = Rect(left=0, top=0, right=400, bottom=200)
        view.zoom_to_fit(bounds, 1000, 1000, padding=50)
        assert view.zoom == pytest.approx(2.0)
        # content center maps to viewport center
        assert view.pan == Position(x=200 - 250, y=100 - 250)

    def test_zoom_to_fit_empty_resets(self):
        view = CanvasViewState(zoom=3.0, pan=Position(x=40, y=40))
        view.zoom_to_fit(None, 800, 600)
        assert view.zoom == 1.0
        assert view.pan == Position()


class TestPanAndGrid:

    def test_pan_by_is_zoom_aware(self):
        view = CanvasViewState(zoom=2.0)
        view.pan_by(40, -20)
        assert view.pan == Position(x=-20, y=10)

    def test_grid_size_must_be_positive(self):
        view = CanvasViewState()
        with pytest.raises(InvalidGeometry):
            view.set_grid_size(0)
        view.set_grid_size(25)
        assert view.grid_size == 25

    def test_visible_world_rect(self):
        view = CanvasViewState(zoom=2.0, pan=Position(x=100, y=50))
        assert view.visible_world_rect(800, 600) == Rect(left=100, top=50, right=500, bottom=350)


class TestSelectionState:

    def test_replace_deduplicates_in_order(self):
        selection = SelectionState()
        selection.replace(["b", "a", "b"])
        assert selection.ids == ["b", "a"]

    def test_toggle(self):
        selection = SelectionState()
        assert selection.toggle("a") is True
        assert selection.toggle("a") is False
        assert selection.ids == []

    def test_prune(self):
        selection = SelectionState(ids=["a", "b", "c"])
        selection.prune({"a", "c"})
        assert selection.ids == ["a", "c"]
