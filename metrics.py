"""
Metrics and cut length accounting for optimized materials.
"""

import logging
from typing import Dict, Optional, Sequence

from data_models import (Board, BoardInstance, BoardUsage, DebugInfo, Metrics,
                         Placement, UnplacedPart)

logger = logging.getLogger(__name__)


def trim_cut_length(board: Board) -> float:
    """
    Calculate the cut length of trimming one raw board.

    Top and bottom trims run across the full board width; left and right trims
    run along the height left between the top and bottom trims. Edges without
    trim are not cut.

    Args:
        board: Board type of the material

    Returns:
        Trim cut length in mm
    """
    if not board.has_trim():
        return 0.0

    length = 0.0
    if board.trim_top_mm > 0:
        length += board.w_mm
    if board.trim_bottom_mm > 0:
        length += board.w_mm
    if board.trim_left_mm > 0:
        length += board.usable_height
    if board.trim_right_mm > 0:
        length += board.usable_height
    return length


def calculate_board_cut_lengths(boards: Sequence[BoardInstance], board: Board) -> Dict[int, float]:
    """
    Calculate the cut length contributed by each opened board.

    Returns:
        Map of board_id to trim cut length plus split cut length
    """
    trim_length = trim_cut_length(board)
    return {instance.board_id: trim_length + instance.cut_length_mm for instance in boards}


def calculate_waste_pct(used_area: float, board_area: float) -> float:
    if board_area <= 0:
        return 0.0
    return round((1 - used_area / board_area) * 100, 2)


def calculate_metrics(placements: Sequence[Placement], unplaced: Sequence[UnplacedPart],
                      boards: Sequence[BoardInstance],
                      board_cut_lengths: Dict[int, float]) -> Metrics:
    """
    Aggregate placements and unplaced parts of one material.

    Args:
        placements: Placements of the material
        unplaced: Unplaced part copies
        boards: Opened board instances
        board_cut_lengths: Per-board cut lengths

    Returns:
        Metrics record
    """
    used_area = sum(p.w_mm * p.h_mm for p in placements)
    board_area = sum(b.get_usable_area() for b in boards)

    return Metrics(
        used_area_mm2=used_area,
        board_area_mm2=board_area,
        waste_pct=calculate_waste_pct(used_area, board_area),
        placed_count=len(placements),
        unplaced_count=len(unplaced),
        boards_used=len(boards),
        total_cut_length_mm=sum(board_cut_lengths.values())
    )


def build_debug_info(board: Board, boards_used: int, panels_count: int) -> DebugInfo:
    return DebugInfo(
        board_width=board.w_mm,
        board_height=board.h_mm,
        usable_width=board.usable_width,
        usable_height=board.usable_height,
        bins_count=boards_used,
        panels_count=panels_count
    )


def calculate_board_usage(boards: Sequence[BoardInstance],
                          usage_limit_pct: Optional[float]) -> Optional[BoardUsage]:
    """
    Split opened boards into fully used boards and leftover placed area.

    Boards at or above the usage limit count as full boards. The placed area of
    the remaining boards is summed in square metres, rounded per board.

    Args:
        boards: Opened board instances
        usage_limit_pct: Utilization threshold (0-100), or None to skip

    Returns:
        BoardUsage record, or None when no limit is configured
    """
    if usage_limit_pct is None:
        return None

    full_boards = 0
    extra_area_m2 = 0.0
    for instance in boards:
        if instance.get_utilization_percentage() >= usage_limit_pct:
            full_boards += 1
        else:
            extra_area_m2 += round(instance.get_used_area() / 1_000_000, 2)

    logger.debug(f"Board usage at {usage_limit_pct}%: {full_boards} full boards, "
                 f"{extra_area_m2:.2f} m² extra")
    return BoardUsage(
        usage_limit_pct=usage_limit_pct,
        full_boards=full_boards,
        extra_area_m2=round(extra_area_m2, 2)
    )

