import pytest

from data_models import Board, UnitRequest
from metrics import (build_debug_info, calculate_board_cut_lengths, calculate_board_usage,
                     calculate_metrics, calculate_waste_pct, trim_cut_length)
from optimization_core import pack_unit_requests


def _unit(part_id, w, h):
    return UnitRequest(id=part_id, w_mm=w, h_mm=h, allow_rot_90=False, grain_locked=False)


def test_trim_cut_length_all_edges(standard_board):
    # Two full-width cuts plus two cuts between them
    assert trim_cut_length(standard_board) == 2 * 2800 + 2 * 2050


def test_trim_cut_length_without_trims(square_board):
    assert trim_cut_length(square_board) == 0


@pytest.mark.parametrize("trims, expected", [
    ({"trim_top_mm": 5}, 2000),
    ({"trim_bottom_mm": 5}, 2000),
    ({"trim_left_mm": 5}, 1000),
    ({"trim_left_mm": 5, "trim_top_mm": 10, "trim_bottom_mm": 10}, 2000 + 2000 + 980),
])
def test_trim_cut_length_single_edges(trims, expected):
    assert trim_cut_length(Board(2000, 1000, **trims)) == expected


def test_waste_pct():
    assert calculate_waste_pct(480000, 2780 * 2050) == 91.58
    assert calculate_waste_pct(0, 0) == 0.0
    assert calculate_waste_pct(100, 100) == 0.0


def test_board_cut_lengths_include_trims_per_board():
    board = Board(1000, 1000, trim_top_mm=10)
    units = [_unit("a", 1000, 990), _unit("b", 500, 500)]
    outcome = pack_unit_requests(units, board, kerf=3)

    cut_lengths = calculate_board_cut_lengths(outcome.boards, board)

    # a fills its board exactly; b needs a horizontal and a vertical cut
    assert cut_lengths == {0: 1000, 1: 1000 + 1000 + 500}


def test_metrics_aggregate_outcome():
    board = Board(1000, 1000)
    units = [_unit("a", 1000, 900), _unit("b", 500, 500), _unit("big", 2000, 10)]
    outcome = pack_unit_requests(units, board, kerf=3)
    cut_lengths = calculate_board_cut_lengths(outcome.boards, board)

    metrics = calculate_metrics(outcome.placements, outcome.unplaced, outcome.boards, cut_lengths)

    assert metrics.used_area_mm2 == 900000 + 250000
    assert metrics.board_area_mm2 == 2000000
    assert metrics.waste_pct == 42.5
    assert metrics.placed_count == 2
    assert metrics.unplaced_count == 1
    assert metrics.boards_used == 2
    assert metrics.total_cut_length_mm == sum(cut_lengths.values())


def test_metrics_of_empty_material():
    metrics = calculate_metrics([], [], [], {})
    assert metrics.boards_used == 0
    assert metrics.waste_pct == 0
    assert metrics.total_cut_length_mm == 0


def test_debug_info(standard_board):
    debug = build_debug_info(standard_board, boards_used=2, panels_count=7)
    assert (debug.board_width, debug.board_height) == (2800, 2070)
    assert (debug.usable_width, debug.usable_height) == (2780, 2050)
    assert (debug.bins_count, debug.panels_count) == (2, 7)


@pytest.mark.parametrize("limit, full_boards, extra_area_m2", [
    (65, 1, 0.25),
    (20, 2, 0.0),
    (95, 0, 1.15),
])
def test_board_usage(limit, full_boards, extra_area_m2):
    units = [_unit("a", 1000, 900), _unit("b", 500, 500)]
    outcome = pack_unit_requests(units, Board(1000, 1000), kerf=3)

    usage = calculate_board_usage(outcome.boards, limit)

    assert usage.usage_limit_pct == limit
    assert usage.full_boards == full_boards
    assert usage.extra_area_m2 == pytest.approx(extra_area_m2)


def test_board_usage_disabled_without_limit():
    assert calculate_board_usage([], None) is None
