import itertools
import logging
import time
import types
from collections import Counter

import optimization_core
from conftest import rectangles_overlap
from data_models import Board, BoardInstance, FreeRectangle, UnitRequest
from optimization_core import (BoardAllocator, find_best_fit, fits_board, get_orientations,
                               pack_unit_requests, pack_with_lookahead)


def _unit(part_id="p", w=100, h=100, rot=False, grain=False):
    return UnitRequest(id=part_id, w_mm=w, h_mm=h, allow_rot_90=rot, grain_locked=grain)


def test_best_fit_prefers_least_leftover_area():
    board = BoardInstance(0, 1000, 1000, kerf=0)
    tight = FreeRectangle(0, 0, 310, 300)
    board.free_rectangles = [FreeRectangle(0, 0, 1000, 1000), tight]

    candidate = find_best_fit(_unit(w=300, h=300), [board])

    assert candidate.free_rect == tight
    assert candidate.score[0] == 310 * 300 - 300 * 300


def test_best_fit_ties_break_to_lowest_board_and_unrotated():
    boards = [BoardInstance(0, 500, 500, kerf=0), BoardInstance(1, 500, 500, kerf=0)]
    candidate = find_best_fit(_unit(w=500, h=200, rot=True), boards)
    assert candidate.board.board_id == 0
    # Both orientations score the same; unrotated wins
    assert candidate.rotated is False

    candidate = find_best_fit(_unit(w=300, h=300, rot=True), list(reversed(boards)))
    assert candidate.board.board_id == 0
    assert candidate.rotated is False


def test_best_fit_skips_degenerate_rectangles(caplog):
    board = BoardInstance(0, 1000, 1000, kerf=0)
    board.free_rectangles = [FreeRectangle(0, 0, -5, 10)]
    with caplog.at_level(logging.ERROR, logger="optimization_core"):
        assert find_best_fit(_unit(w=1, h=1), [board]) is None
    assert "degenerate" in caplog.text


def test_forced_orientation_falls_back_when_not_allowed():
    assert get_orientations(_unit(w=300, h=200), forced_rotation=True) == [(300, 200, False)]
    assert get_orientations(_unit(w=300, h=200, rot=True), forced_rotation=True) == [(200, 300, True)]


def test_fits_board_checks_usable_area():
    board = Board(1000, 500, trim_left_mm=10)
    assert fits_board(_unit(w=990, h=500), board)
    assert not fits_board(_unit(w=991, h=500), board)
    assert fits_board(_unit(w=400, h=800, rot=True), board)
    assert not fits_board(_unit(w=400, h=800, rot=True, grain=True), board)


def test_allocator_offsets_placements_by_trims():
    allocator = BoardAllocator(Board(1000, 1000, trim_top_mm=5, trim_left_mm=7), kerf=3)
    placement = allocator.place(_unit(w=100, h=100))
    assert (placement.x_mm, placement.y_mm, placement.board_id, placement.rot_deg) == (7, 5, 0, 0)


def test_allocator_opens_boards_lazily():
    allocator = BoardAllocator(Board(1000, 1000), kerf=0)
    assert allocator.instances == []
    allocator.place(_unit(w=1000, h=600))
    allocator.place(_unit(w=1000, h=400))
    assert len(allocator.instances) == 1
    allocator.place(_unit(w=10, h=10))
    assert len(allocator.instances) == 2


def test_part_that_only_fits_rotated_is_rotated():
    outcome = pack_unit_requests([_unit("tall", w=400, h=800, rot=True)], Board(1000, 500), kerf=3)
    assert outcome.unplaced == []
    placement = outcome.placements[0]
    assert (placement.w_mm, placement.h_mm, placement.rot_deg) == (800, 400, 90)


def test_grain_locked_part_is_never_rotated():
    outcome = pack_unit_requests([_unit("door", w=400, h=800, rot=True, grain=True)],
                                 Board(1000, 500), kerf=3)
    assert outcome.placements == []
    assert outcome.unplaced[0].reason == "exceeds board dimensions"
    assert outcome.boards == []


def test_oversized_part_does_not_open_a_board():
    units = [_unit("huge", w=1200, h=100, rot=True), _unit("ok", w=100, h=100)]
    outcome = pack_unit_requests(units, Board(1000, 1000), kerf=3)

    assert [u.id for u in outcome.unplaced] == ["huge"]
    assert outcome.unplaced[0].reason == "exceeds board dimensions"
    assert len(outcome.boards) == 1
    assert outcome.placements[0].id == "ok"


def test_square_parts_fill_four_per_board():
    units = [_unit(f"p{i}", w=400, h=400) for i in range(11)]
    outcome = pack_unit_requests(units, Board(1000, 1000), kerf=3)

    assert len(outcome.placements) == 11
    assert len(outcome.boards) == 3
    assert Counter(p.board_id for p in outcome.placements) == {0: 4, 1: 4, 2: 3}
    positions = sorted((p.x_mm, p.y_mm) for p in outcome.placements if p.board_id == 0)
    assert positions == [(0, 0), (0, 403), (403, 0), (403, 403)]

    for a, b in itertools.combinations(outcome.placements, 2):
        if a.board_id == b.board_id:
            assert not rectangles_overlap(a.to_dict(), b.to_dict())


def test_split_cut_length_is_tracked_per_board():
    outcome = pack_unit_requests([_unit("a", w=300, h=200)], Board(1000, 500), kerf=5)
    assert outcome.boards[0].cut_length_mm == 1000 + 200


def test_past_deadline_times_out_every_part():
    units = [_unit(f"p{i}") for i in range(3)]
    outcome = pack_unit_requests(units, Board(1000, 1000), kerf=3, deadline=time.monotonic() - 1)

    assert outcome.timed_out
    assert outcome.placements == []
    assert outcome.boards == []
    assert [u.reason for u in outcome.unplaced] == ["timeout"] * 3


def test_deadline_reached_mid_run(monkeypatch):
    clock = itertools.chain([0.0, 0.0], itertools.repeat(100.0))
    monkeypatch.setattr(optimization_core, "time", types.SimpleNamespace(monotonic=lambda: next(clock)))

    units = [_unit(f"p{i}") for i in range(5)]
    outcome = pack_unit_requests(units, Board(1000, 1000), kerf=3, deadline=50.0)

    assert [p.id for p in outcome.placements] == ["p0", "p1"]
    assert [u.id for u in outcome.unplaced] == ["p2", "p3", "p4"]
    assert all(u.reason == "timeout" for u in outcome.unplaced)


def test_lookahead_finds_rotation_that_saves_a_board():
    units = [
        _unit("side", w=600, h=1000, rot=True),
        _unit("strip", w=1000, h=400, rot=True, grain=True),
    ]
    board = Board(1000, 1000)

    greedy = pack_unit_requests(units, board, kerf=0)
    assert len(greedy.boards) == 2

    searched = pack_with_lookahead(units, board, kerf=0, lookahead=1)
    assert len(searched.boards) == 1
    assert searched.placements[0].rot_deg == 90
    assert searched.unplaced == []


def test_lookahead_without_rotatable_parts_matches_greedy():
    units = [_unit(f"p{i}", w=300, h=200) for i in range(6)]
    board = Board(1000, 1000)
    greedy = pack_unit_requests(units, board, kerf=3)
    searched = pack_with_lookahead(units, board, kerf=3, lookahead=3)
    assert searched.placements == greedy.placements


def test_lookahead_never_worse_than_greedy():
    units = [_unit(f"p{i}", w=700 - i * 40, h=300 + i * 25, rot=True) for i in range(10)]
    board = Board(1200, 1000)
    greedy = pack_unit_requests(units, board, kerf=3)
    searched = pack_with_lookahead(units, board, kerf=3, lookahead=3)
    assert len(searched.boards) <= len(greedy.boards)
    assert len(searched.placements) == len(units)
