"""
Guillotine packing core: best-fit placement across lazily opened boards.
"""

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from config import MAX_LOOKAHEAD_PANELS, REASON_EXCEEDS_BOARD, REASON_TIMEOUT
from data_models import (Board, BoardInstance, FreeRectangle, Placement,
                         UnitRequest, UnplacedPart)

logger = logging.getLogger(__name__)


class FitCandidate(NamedTuple):
    score: Tuple[float, float, int, int, int]
    board: BoardInstance
    free_rect: FreeRectangle
    rotated: bool


@dataclass
class PackingOutcome:
    """Placements, unplaced copies and opened boards of one packing run."""
    placements: List[Placement] = field(default_factory=list)
    unplaced: List[UnplacedPart] = field(default_factory=list)
    boards: List[BoardInstance] = field(default_factory=list)
    timed_out: bool = False

    def get_waste_area(self) -> float:
        return sum(b.get_usable_area() - b.get_used_area() for b in self.boards)


def get_orientations(unit: UnitRequest, forced_rotation: Optional[bool] = None) -> List[Tuple[float, float, bool]]:
    """
    Allowed (width, height, rotated) orientations of a unit request.

    A forced rotation restricts the choice to that orientation when the unit allows it.
    """
    orientations = unit.orientations()
    if forced_rotation is None:
        return orientations
    forced = [o for o in orientations if o[2] == forced_rotation]
    return forced or orientations


def find_best_fit(unit: UnitRequest, boards: Sequence[BoardInstance],
                  orientations: Optional[List[Tuple[float, float, bool]]] = None) -> Optional[FitCandidate]:
    """
    Find the best free rectangle for a unit request across the given boards.

    Best-area-fit: least leftover area wins, then least leftover along the shorter
    side, then lowest board id, free rectangle position and unrotated first.

    Args:
        unit: Unit request to place
        boards: Open board instances to search
        orientations: Orientations to try; defaults to all the unit allows

    Returns:
        The best FitCandidate, or None if nothing fits
    """
    if orientations is None:
        orientations = unit.orientations()

    best: Optional[FitCandidate] = None
    for board in boards:
        for index, free_rect in enumerate(board.free_rectangles):
            if free_rect.is_degenerate():
                logger.error(f"Skipping degenerate {free_rect} on board {board.board_id}")
                continue

            for width, height, rotated in orientations:
                if not free_rect.can_fit(width, height):
                    continue

                leftover_area = free_rect.get_area() - width * height
                short_side_leftover = min(free_rect.width - width, free_rect.height - height)
                score = (leftover_area, short_side_leftover, board.board_id, index, int(rotated))

                if best is None or score < best.score:
                    best = FitCandidate(score, board, free_rect, rotated)

    return best


def fits_board(unit: UnitRequest, board: Board,
               orientations: Optional[List[Tuple[float, float, bool]]] = None) -> bool:
    """Check if a unit request fits an empty board of this type in any allowed orientation."""
    if orientations is None:
        orientations = unit.orientations()
    return any(width <= board.usable_width and height <= board.usable_height
               for width, height, _ in orientations)


class BoardAllocator:
    """
    Places unit requests onto board instances, opening a new instance only when
    no open board has room.
    """

    def __init__(self, board: Board, kerf: float):
        """
        Initialize a BoardAllocator.

        Args:
            board: Board type of the material
            kerf: Kerf width in mm
        """
        self.board = board
        self.kerf = kerf
        self.instances: List[BoardInstance] = []

    def open_board(self) -> BoardInstance:
        """Open a new board instance with the full usable area free."""
        instance = BoardInstance(
            board_id=len(self.instances),
            usable_width=self.board.usable_width,
            usable_height=self.board.usable_height,
            kerf=self.kerf
        )
        self.instances.append(instance)
        logger.debug(f"Opened board {instance.board_id}")
        return instance

    def place(self, unit: UnitRequest, forced_rotation: Optional[bool] = None) -> Optional[Placement]:
        """
        Place one unit request.

        Args:
            unit: Unit request to place
            forced_rotation: Restrict the orientation (used by the look-ahead search)

        Returns:
            The Placement in raw board coordinates, or None if the part exceeds the board
        """
        orientations = get_orientations(unit, forced_rotation)
        if not fits_board(unit, self.board, orientations):
            # A forced orientation that cannot fit falls back to every allowed one
            orientations = unit.orientations()
            if not fits_board(unit, self.board, orientations):
                return None

        candidate = find_best_fit(unit, self.instances, orientations)
        if candidate is None:
            new_board = self.open_board()
            candidate = find_best_fit(unit, [new_board], orientations)
            if candidate is None:
                raise RuntimeError(f"Part {unit.id} fits the board type but not a fresh board")

        placed = candidate.board.place_part(unit, candidate.free_rect, candidate.rotated)
        placement = Placement(
            id=unit.id,
            x_mm=placed.x + self.board.trim_left_mm,
            y_mm=placed.y + self.board.trim_top_mm,
            w_mm=placed.width,
            h_mm=placed.height,
            rot_deg=90 if placed.rotated else 0,
            board_id=candidate.board.board_id
        )
        logger.debug(f"Placed {unit.id} on board {placement.board_id} at "
                     f"({placement.x_mm}, {placement.y_mm}) rot={placement.rot_deg}")
        return placement


def pack_unit_requests(unit_requests: Sequence[UnitRequest], board: Board, kerf: float,
                       deadline: Optional[float] = None,
                       forced_rotations: Optional[Dict[int, bool]] = None) -> PackingOutcome:
    """
    Place unit requests in order onto as many boards as needed.

    Args:
        unit_requests: Ordered unit requests
        board: Board type of the material
        kerf: Kerf width in mm
        deadline: time.monotonic() value after which remaining requests time out
        forced_rotations: Map of request index to forced rotation

    Returns:
        PackingOutcome with placements, unplaced copies and opened boards
    """
    forced_rotations = forced_rotations or {}
    allocator = BoardAllocator(board, kerf)
    outcome = PackingOutcome(boards=allocator.instances)

    for index, unit in enumerate(unit_requests):
        if deadline is not None and time.monotonic() > deadline:
            remaining = unit_requests[index:]
            logger.warning(f"Time budget exhausted, {len(remaining)} parts left unplaced")
            outcome.unplaced.extend(
                UnplacedPart(id=u.id, w_mm=u.w_mm, h_mm=u.h_mm, reason=REASON_TIMEOUT)
                for u in remaining
            )
            outcome.timed_out = True
            break

        placement = allocator.place(unit, forced_rotations.get(index))
        if placement is None:
            logger.warning(f"Could not place part {unit.id} ({unit.w_mm}x{unit.h_mm}): "
                           f"{REASON_EXCEEDS_BOARD}")
            outcome.unplaced.append(UnplacedPart(
                id=unit.id, w_mm=unit.w_mm, h_mm=unit.h_mm, reason=REASON_EXCEEDS_BOARD
            ))
        else:
            outcome.placements.append(placement)

    return outcome


def _outcome_rank(outcome: PackingOutcome) -> Tuple[int, int, float]:
    return (len(outcome.unplaced), len(outcome.boards), outcome.get_waste_area())


def pack_with_lookahead(unit_requests: Sequence[UnitRequest], board: Board, kerf: float,
                        lookahead: int, deadline: Optional[float] = None) -> PackingOutcome:
    """
    Pack with an orientation search over the leading rotatable panels.

    Every rotation combination of the rotatable requests among the first `lookahead`
    is packed; the run with fewest unplaced parts, then fewest boards, then least
    waste wins. Earlier combinations win ties, the all-unrotated one first.

    Args:
        unit_requests: Ordered unit requests
        board: Board type of the material
        kerf: Kerf width in mm
        lookahead: Number of leading requests to search (capped)
        deadline: time.monotonic() value after which remaining requests time out

    Returns:
        The best PackingOutcome
    """
    lookahead = min(lookahead, MAX_LOOKAHEAD_PANELS)
    candidates = [i for i, unit in enumerate(unit_requests[:lookahead])
                  if len(unit.orientations()) > 1]
    if not candidates:
        return pack_unit_requests(unit_requests, board, kerf, deadline)

    best: Optional[PackingOutcome] = None
    best_combo = None
    tested = 0
    for combo in itertools.product((False, True), repeat=len(candidates)):
        forced = dict(zip(candidates, combo))
        outcome = pack_unit_requests(unit_requests, board, kerf, deadline, forced)
        tested += 1
        if best is None or _outcome_rank(outcome) < _outcome_rank(best):
            best = outcome
            best_combo = combo
        if outcome.timed_out:
            break

    logger.info(f"Look-ahead tested {tested} orientation combinations, "
                f"best {best_combo}: {len(best.boards)} boards")
    return best
