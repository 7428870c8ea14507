"""
Layer Models for the SLD Engine
===============================

Drawing layers that partition diagram components, plus the standard set of
electrical drawing layers every new editing session starts with.
"""

from enum import Enum
from typing import List, Set
from pydantic import BaseModel, Field


class LayerCategory(str, Enum):
    """Grouping of layers by electrical system."""
    POWER = "power"
    CONTROL = "control"
    COMMUNICATION = "communication"
    SAFETY = "safety"
    GROUNDING = "grounding"
    ANNOTATION = "annotation"
    DIMENSION = "dimension"
    CUSTOM = "custom"


class LineType(str, Enum):
    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"
    DASHDOT = "dashdot"


class Layer(BaseModel):
    """A named, orderable partition of diagram components."""
    id: str
    name: str
    description: str = ""
    category: LayerCategory = LayerCategory.CUSTOM
    order: int = 0
    visible: bool = True
    locked: bool = False
    opacity: float = Field(default=1.0, ge=0.0, le=1.0)
    color: str = "#1f2937"
    stroke_width: float = Field(default=1.0, gt=0)
    line_type: LineType = LineType.SOLID
    printable: bool = True
    component_ids: Set[str] = Field(default_factory=set)


class LayerStyle(BaseModel):
    """Effective paint style of a component, derived from its layer."""
    layer_id: str
    color: str
    stroke_width: float
    opacity: float
    line_type: LineType
    visible: bool


class LayerSummary(BaseModel):
    """Per-layer state handed to the render surface."""
    id: str
    name: str
    category: LayerCategory
    order: int
    visible: bool
    locked: bool
    opacity: float
    color: str
    component_count: int
    component_ids: List[str] = Field(default_factory=list)


DEFAULT_LAYER_ID = "power_main"

# Standard electrical drawing layers
STANDARD_LAYERS = [
    {"id": "power_main", "name": "Main Power", "category": LayerCategory.POWER,
     "description": "Main service entrance and primary distribution",
     "color": "#dc2626", "stroke_width": 3, "line_type": LineType.SOLID, "order": 10},
    {"id": "power_branch", "name": "Branch Circuits", "category": LayerCategory.POWER,
     "description": "Branch circuit distribution and loads",
     "color": "#ea580c", "stroke_width": 2, "line_type": LineType.SOLID, "order": 9},
    {"id": "power_emergency", "name": "Emergency Power", "category": LayerCategory.POWER,
     "description": "Generator, UPS, and emergency circuits",
     "color": "#dc2626", "stroke_width": 2, "line_type": LineType.DASHED, "order": 8},
    {"id": "control_logic", "name": "Control Logic", "category": LayerCategory.CONTROL,
     "color": "#2563eb", "stroke_width": 1, "line_type": LineType.SOLID, "order": 7},
    {"id": "control_instrumentation", "name": "Instrumentation", "category": LayerCategory.CONTROL,
     "color": "#7c3aed", "stroke_width": 1, "line_type": LineType.SOLID, "order": 6},
    {"id": "comm_data", "name": "Data/Network", "category": LayerCategory.COMMUNICATION,
     "color": "#059669", "stroke_width": 1, "line_type": LineType.DOTTED, "order": 5},
    {"id": "comm_wireless", "name": "Wireless", "category": LayerCategory.COMMUNICATION,
     "color": "#0891b2", "stroke_width": 1, "line_type": LineType.DASHDOT, "order": 4,
     "opacity": 0.8},
    {"id": "safety_fire", "name": "Fire Safety", "category": LayerCategory.SAFETY,
     "color": "#dc2626", "stroke_width": 2, "line_type": LineType.DASHDOT, "order": 8},
    {"id": "safety_security", "name": "Security", "category": LayerCategory.SAFETY,
     "color": "#7c2d12", "stroke_width": 1, "line_type": LineType.DASHED, "order": 7},
    {"id": "grounding_main", "name": "Grounding System", "category": LayerCategory.GROUNDING,
     "color": "#166534", "stroke_width": 2, "line_type": LineType.SOLID, "order": 3},
    {"id": "grounding_lightning", "name": "Lightning Protection", "category": LayerCategory.GROUNDING,
     "color": "#facc15", "stroke_width": 2, "line_type": LineType.DASHED, "order": 2},
    {"id": "annotation_text", "name": "Text & Labels", "category": LayerCategory.ANNOTATION,
     "color": "#1f2937", "stroke_width": 1, "line_type": LineType.SOLID, "order": 15},
    {"id": "annotation_symbols", "name": "Symbols & Tags", "category": LayerCategory.ANNOTATION,
     "color": "#374151", "stroke_width": 1, "line_type": LineType.SOLID, "order": 14},
    {"id": "dimension_linear", "name": "Linear Dimensions", "category": LayerCategory.DIMENSION,
     "color": "#6b7280", "stroke_width": 1, "line_type": LineType.SOLID, "order": 13,
     "opacity": 0.8},
    {"id": "dimension_angular", "name": "Angular Dimensions", "category": LayerCategory.DIMENSION,
     "color": "#9ca3af", "stroke_width": 1, "line_type": LineType.SOLID, "order": 12,
     "opacity": 0.8},
    {"id": "construction_grid", "name": "Construction Grid", "category": LayerCategory.ANNOTATION,
     "color": "#e5e7eb", "stroke_width": 0.5, "line_type": LineType.DOTTED, "order": 1,
     "opacity": 0.5, "visible": False, "printable": False},
    {"id": "reference_background", "name": "Background Reference", "category": LayerCategory.ANNOTATION,
     "color": "#f3f4f6", "stroke_width": 1, "line_type": LineType.DASHED, "order": 0,
     "opacity": 0.3, "locked": True},
]

# Component type -> layer used when a component is placed
COMPONENT_LAYER_MAP = {
    # Power
    "main_panel": "power_main",
    "panel": "power_main",
    "transformer": "power_main",
    "utility_meter": "power_main",
    "sub_panel": "power_branch",
    "circuit_breaker": "power_branch",
    "breaker": "power_branch",
    "generator": "power_emergency",
    "ups": "power_emergency",
    # Control
    "motor_starter": "control_logic",
    "contactor": "control_logic",
    "relay": "control_logic",
    "plc": "control_logic",
    "hmi": "control_instrumentation",
    "meter": "control_instrumentation",
    "sensor": "control_instrumentation",
    # Communication
    "ethernet_switch": "comm_data",
    "router": "comm_data",
    "wireless_ap": "comm_wireless",
    "cellular_modem": "comm_wireless",
    # Safety
    "fire_alarm_panel": "safety_fire",
    "smoke_detector": "safety_fire",
    "security_panel": "safety_security",
    "camera": "safety_security",
    # Grounding
    "grounding_electrode": "grounding_main",
    "surge_protector": "grounding_lightning",
    "lightning_rod": "grounding_lightning",
}
