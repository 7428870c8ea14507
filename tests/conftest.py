"""
Shared fixtures for the SLD engine test suite.
"""

import pytest

from sld_engine.canvas.state_manager import EditorSession, StateManager
from sld_engine.config import EngineConfig
from sld_engine.models.diagram_models import Component, Connection, Position, Size


def build_component(component_id, x=0.0, y=0.0, width=10.0, height=10.0, type="load", **properties):
    return Component(
        id=component_id,
        type=type,
        position=Position(x=x, y=y),
        size=Size(width=width, height=height),
        properties=properties,
    )


def build_connection(connection_id, from_id, to_id, kind="power"):
    return Connection(id=connection_id, from_component_id=from_id, to_component_id=to_id, kind=kind)


@pytest.fixture
def make_component():
    return build_component


@pytest.fixture
def make_connection():
    return build_connection


@pytest.fixture
def config():
    return EngineConfig(snap_to_grid=False)


@pytest.fixture
def session(config):
    """An editing session with snapping off and a default 1:1 view."""
    return EditorSession("test-session", config)


@pytest.fixture
def state_manager(tmp_path, config):
    return StateManager(sessions_dir=tmp_path / "sessions", config=config)
