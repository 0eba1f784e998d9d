import csv
import io

import pytest

from conftest import make_material
from orchestrator import optimize_request
from simple_reports import generate_cutlist_csv, generate_cutting_layout_text, group_placements_by_board


@pytest.fixture
def results():
    good = make_material(
        "oak-18",
        name="Oak 18",
        parts=[
            {"id": "side", "w_mm": 600, "h_mm": 400, "qty": 2, "allow_rot_90": True},
            {"id": "beam", "w_mm": 3000, "h_mm": 100, "qty": 1},
        ],
        board={"w_mm": 2800, "h_mm": 2070, "trim_top_mm": 10, "trim_bottom_mm": 10},
        params={"kerf_mm": 3, "usage_limit_pct": 50},
    )
    bad = make_material("bad", name="Broken", board={"w_mm": 0, "h_mm": 100})
    return optimize_request({"materials": [good, bad]})["results"]


def test_group_placements_by_board():
    result = {"placements": [{"id": "b", "board_id": 1}, {"id": "a", "board_id": 0},
                             {"id": "c", "board_id": 1}]}
    grouped = group_placements_by_board(result)
    assert list(grouped) == [0, 1]
    assert [p["id"] for p in grouped[1]] == ["b", "c"]


def test_text_report(results):
    report = generate_cutting_layout_text(results, "Kitchen 42")

    assert report.startswith("CUTTING LAYOUT REPORT - ORDER: Kitchen 42")
    assert "MATERIAL: Oak 18 (oak-18)" in report
    assert "Boards Used: 1" in report
    assert "Parts Placed: 2/3" in report
    assert "BOARD 0: 2 parts" in report
    assert "Rotated" in report
    assert "UNPLACED PARTS:" in report
    assert "exceeds board dimensions" in report
    assert "Full Boards" in report
    assert "REJECTED: invalid material" in report


def test_text_report_without_order_name():
    assert generate_cutting_layout_text([]).startswith("CUTTING LAYOUT REPORT\n")


def test_cutlist_csv(results):
    rows = list(csv.reader(io.StringIO(generate_cutlist_csv(results))))

    assert rows[0][:3] == ["Material ID", "Material Name", "Part ID"]
    body = rows[1:]
    assert len(body) == 3
    assert [row[-1] for row in body] == ["Placed", "Placed", "Unplaced: exceeds board dimensions"]
    assert all(row[0] == "oak-18" for row in body)
    assert body[0][3] == "0"
    assert body[0][8] == "Yes"
