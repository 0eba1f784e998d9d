"""
Shared test fixtures for the cutting optimizer tests.
"""
import sys
from pathlib import Path

import pytest

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from data_models import Board, Part


def rectangles_overlap(a, b):
    """Strict overlap of two placements; touching edges do not overlap."""
    return (a['x_mm'] < b['x_mm'] + b['w_mm'] and b['x_mm'] < a['x_mm'] + a['w_mm'] and
            a['y_mm'] < b['y_mm'] + b['h_mm'] and b['y_mm'] < a['y_mm'] + a['h_mm'])


def make_material(material_id="m1", parts=None, board=None, params=None, name="Test Material"):
    """Build a raw material payload."""
    return {
        "id": material_id,
        "name": name,
        "parts": parts if parts is not None else [],
        "board": board if board is not None else {"w_mm": 1000, "h_mm": 1000},
        "params": params if params is not None else {"kerf_mm": 3},
    }


@pytest.fixture
def standard_board():
    """A 2800x2070 chipboard sheet with 10mm trims on every edge."""
    return Board(2800, 2070, trim_top_mm=10, trim_right_mm=10, trim_bottom_mm=10, trim_left_mm=10)


@pytest.fixture
def square_board():
    """A 1000x1000 sheet without trims."""
    return Board(1000, 1000)


@pytest.fixture
def mixed_parts():
    """A realistic cabinet part list with rotation and grain constraints."""
    return [
        Part("side", 720, 560, qty=4, allow_rot_90=True),
        Part("door", 716, 396, qty=4, allow_rot_90=True, grain_locked=True),
        Part("shelf", 764, 540, qty=6, allow_rot_90=True),
        Part("back", 1200, 800, qty=2, allow_rot_90=False),
        Part("drawer", 450, 150, qty=12, allow_rot_90=True),
        Part("plinth", 2400, 100, qty=2, allow_rot_90=True),
    ]


@pytest.fixture
def mixed_request():
    """A two-material request with trims, kerf and a seed."""
    return {
        "materials": [
            make_material(
                "egger-w1000",
                parts=[
                    {"id": "side", "w_mm": 720, "h_mm": 560, "qty": 4, "allow_rot_90": True, "grain_locked": False},
                    {"id": "door", "w_mm": 716, "h_mm": 396, "qty": 4, "allow_rot_90": True, "grain_locked": True},
                    {"id": "shelf", "w_mm": 764, "h_mm": 540, "qty": 6, "allow_rot_90": True, "grain_locked": False},
                    {"id": "drawer", "w_mm": 450, "h_mm": 150, "qty": 12, "allow_rot_90": True, "grain_locked": False},
                ],
                board={"w_mm": 2800, "h_mm": 2070, "trim_top_mm": 10, "trim_right_mm": 10,
                       "trim_bottom_mm": 10, "trim_left_mm": 10},
                params={"kerf_mm": 3, "seed": 42},
                name="Egger W1000 ST9",
            ),
            make_material(
                "mdf-19",
                parts=[
                    {"id": "back", "w_mm": 1200, "h_mm": 800, "qty": 3, "allow_rot_90": False, "grain_locked": False},
                    {"id": "plinth", "w_mm": 2400, "h_mm": 100, "qty": 2, "allow_rot_90": True, "grain_locked": False},
                ],
                board={"w_mm": 2800, "h_mm": 2070},
                params={"kerf_mm": 4.4},
                name="MDF 19",
            ),
        ]
    }
