"""
Core data models for the OptiCut cutting optimizer.
Defines Board, Part, Params, FreeRectangle, BoardInstance and the result records.
"""

import logging
import math
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any, Tuple

from config import DEFAULT_KERF_MM, DEFAULT_SORT_STRATEGY, SORT_STRATEGIES, MAX_LOOKAHEAD_PANELS

logger = logging.getLogger(__name__)

# Tolerance for sub-millimetre float comparisons
EPSILON = 1e-9


class OptimizationError(Exception):
    """Base class for errors raised by the optimizer."""


class InvalidInputError(OptimizationError, ValueError):
    """Raised when a board, part or parameter set cannot be optimized."""


class RequestValidationError(OptimizationError):
    """Raised when a request envelope is malformed (e.g. no materials list)."""


def _is_positive_length(value) -> bool:
    return value is not None and 0 < value and math.isfinite(value)


class Board:
    """
    Represents the raw stock sheet of a material, with trim margins on every edge.
    """

    def __init__(self, w_mm: float, h_mm: float, trim_top_mm: float = 0.0,
                 trim_right_mm: float = 0.0, trim_bottom_mm: float = 0.0,
                 trim_left_mm: float = 0.0):
        """
        Initialize a Board.

        Args:
            w_mm, h_mm: Full sheet size in mm
            trim_top_mm, trim_right_mm, trim_bottom_mm, trim_left_mm: Edge margins

        Raises:
            InvalidInputError: If a dimension is not positive, a trim is negative,
                or the trims leave no usable area
        """
        if not _is_positive_length(w_mm) or not _is_positive_length(h_mm):
            raise InvalidInputError(f"Board dimensions must be positive and finite, got {w_mm}x{h_mm}")
        trims = (trim_top_mm, trim_right_mm, trim_bottom_mm, trim_left_mm)
        if any(t < 0 or not math.isfinite(t) for t in trims):
            raise InvalidInputError(f"Board trims must be non-negative, got {trims}")

        self.w_mm = w_mm
        self.h_mm = h_mm
        self.trim_top_mm = trim_top_mm
        self.trim_right_mm = trim_right_mm
        self.trim_bottom_mm = trim_bottom_mm
        self.trim_left_mm = trim_left_mm

        if self.usable_width <= 0 or self.usable_height <= 0:
            raise InvalidInputError(
                f"Board trims leave no usable area: {self.usable_width}x{self.usable_height}"
            )

    @property
    def usable_width(self) -> float:
        return self.w_mm - self.trim_left_mm - self.trim_right_mm

    @property
    def usable_height(self) -> float:
        return self.h_mm - self.trim_top_mm - self.trim_bottom_mm

    @property
    def usable_area(self) -> float:
        return self.usable_width * self.usable_height

    def has_trim(self) -> bool:
        return any(t > 0 for t in (self.trim_top_mm, self.trim_right_mm,
                                   self.trim_bottom_mm, self.trim_left_mm))

    def __str__(self) -> str:
        return f"Board({self.w_mm}x{self.h_mm}, usable {self.usable_width}x{self.usable_height})"

    def __repr__(self) -> str:
        return self.__str__()


class Part:
    """
    Represents a rectangular cut requirement with its quantity and rotation rules.
    The optimizer never mutates a Part; it only expands it into unit requests.
    """

    def __init__(self, part_id: str, w_mm: float, h_mm: float, qty: int = 1,
                 allow_rot_90: bool = False, grain_locked: bool = False):
        """
        Initialize a Part.

        Args:
            part_id: Caller-supplied identifier, unique within a material
            w_mm, h_mm: Dimensions as drawn, before any rotation
            qty: Number of identical copies required
            allow_rot_90: Whether a copy may be placed rotated by 90 degrees
            grain_locked: Grain direction must be kept; overrides allow_rot_90

        Raises:
            InvalidInputError: If a dimension or the quantity is not positive
        """
        if not _is_positive_length(w_mm) or not _is_positive_length(h_mm):
            raise InvalidInputError(f"Part {part_id} dimensions must be positive and finite, got {w_mm}x{h_mm}")
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise InvalidInputError(f"Part {part_id} quantity must be a positive integer, got {qty!r}")

        self.id = part_id
        self.w_mm = w_mm
        self.h_mm = h_mm
        self.qty = qty
        self.allow_rot_90 = bool(allow_rot_90)
        self.grain_locked = bool(grain_locked)

    def can_rotate(self) -> bool:
        """
        Check if part can be rotated 90 degrees.

        Returns:
            True if rotation is allowed and the grain is not locked
        """
        return self.allow_rot_90 and not self.grain_locked

    def get_area(self) -> float:
        return self.w_mm * self.h_mm

    def __str__(self) -> str:
        return f"Part({self.id}, {self.w_mm}x{self.h_mm}, qty={self.qty})"

    def __repr__(self) -> str:
        return self.__str__()


class Params:
    """
    Per-material cutting parameters.
    """

    def __init__(self, kerf_mm: float = DEFAULT_KERF_MM, seed: Optional[int] = None,
                 sort_strategy: str = DEFAULT_SORT_STRATEGY, lookahead: int = 0,
                 time_budget_s: Optional[float] = None,
                 usage_limit_pct: Optional[float] = None):
        """
        Initialize cutting parameters.

        Args:
            kerf_mm: Saw blade width charged at every split
            seed: Optional seed for permuting equally ranked parts
            sort_strategy: Ordering of unit requests (see config.SORT_STRATEGIES)
            lookahead: Number of leading rotatable panels whose orientation is searched
            time_budget_s: Wall-clock budget; remaining parts are reported as timed out
            usage_limit_pct: Utilization above which a board counts as fully used

        Raises:
            InvalidInputError: If a parameter is out of range
        """
        if kerf_mm is None or kerf_mm < 0 or not math.isfinite(kerf_mm):
            raise InvalidInputError(f"Kerf must be non-negative and finite, got {kerf_mm}")
        if sort_strategy not in SORT_STRATEGIES:
            raise InvalidInputError(f"Unknown sort strategy: {sort_strategy}")
        if lookahead < 0 or lookahead > MAX_LOOKAHEAD_PANELS:
            raise InvalidInputError(f"Look-ahead must be between 0 and {MAX_LOOKAHEAD_PANELS}, got {lookahead}")
        if time_budget_s is not None and time_budget_s <= 0:
            raise InvalidInputError(f"Time budget must be positive, got {time_budget_s}")
        if usage_limit_pct is not None and not 0 <= usage_limit_pct <= 100:
            raise InvalidInputError(f"Usage limit must be a percentage, got {usage_limit_pct}")

        self.kerf_mm = kerf_mm
        self.seed = seed
        self.sort_strategy = sort_strategy
        self.lookahead = lookahead
        self.time_budget_s = time_budget_s
        self.usage_limit_pct = usage_limit_pct


class FreeRectangle:
    """
    A candidate empty region on a board instance, in usable-area coordinates.
    """

    def __init__(self, x: float, y: float, width: float, height: float):
        self.x = x
        self.y = y
        self.width = width
        self.height = height

    def get_area(self) -> float:
        return self.width * self.height

    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def can_fit(self, width: float, height: float) -> bool:
        """
        Check if a rectangle of the given size fits in this region.
        Kerf is not added here; it was charged when this region was split off.
        """
        return width <= self.width + EPSILON and height <= self.height + EPSILON

    def contains(self, other: 'FreeRectangle') -> bool:
        return (other.x >= self.x - EPSILON and other.y >= self.y - EPSILON and
                other.x + other.width <= self.x + self.width + EPSILON and
                other.y + other.height <= self.y + self.height + EPSILON)

    def __eq__(self, other) -> bool:
        if not isinstance(other, FreeRectangle):
            return NotImplemented
        return (self.x, self.y, self.width, self.height) == (other.x, other.y, other.width, other.height)

    def __hash__(self) -> int:
        return hash((self.x, self.y, self.width, self.height))

    def __str__(self) -> str:
        return f"FreeRectangle({self.x},{self.y} {self.width}x{self.height})"

    def __repr__(self) -> str:
        return self.__str__()


@dataclass
class UnitRequest:
    """A single copy of a Part waiting to be placed."""
    id: str
    w_mm: float
    h_mm: float
    allow_rot_90: bool
    grain_locked: bool
    part_index: int = 0

    def get_area(self) -> float:
        return self.w_mm * self.h_mm

    def orientations(self) -> List[Tuple[float, float, bool]]:
        """Allowed (width, height, rotated) orientations, unrotated first."""
        options = [(self.w_mm, self.h_mm, False)]
        if self.allow_rot_90 and not self.grain_locked and self.w_mm != self.h_mm:
            options.append((self.h_mm, self.w_mm, True))
        return options


@dataclass
class PlacedRectangle:
    """A part copy placed on a board instance, in usable-area coordinates."""
    id: str
    x: float
    y: float
    width: float
    height: float
    rotated: bool

    def get_area(self) -> float:
        return self.width * self.height


@dataclass
class Placement:
    id: str
    x_mm: float
    y_mm: float
    w_mm: float
    h_mm: float
    rot_deg: int
    board_id: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class UnplacedPart:
    id: str
    w_mm: float
    h_mm: float
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Metrics:
    used_area_mm2: float
    board_area_mm2: float
    waste_pct: float
    placed_count: int
    unplaced_count: int
    boards_used: int
    total_cut_length_mm: float


@dataclass
class DebugInfo:
    board_width: float
    board_height: float
    usable_width: float
    usable_height: float
    bins_count: int
    panels_count: int


@dataclass
class BoardUsage:
    """Split of opened boards into fully charged boards and leftover area."""
    usage_limit_pct: float
    full_boards: int
    extra_area_m2: float


@dataclass
class OptimizationResult:
    """Outcome of optimizing one material."""
    material_id: str
    material_name: str
    placements: List[Placement]
    unplaced: List[UnplacedPart]
    metrics: Metrics
    board_cut_lengths: Dict[int, float]
    debug: DebugInfo
    board_usage: Optional[BoardUsage] = None

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        if self.board_usage is None:
            result.pop('board_usage')
        return result


@dataclass
class MaterialFailure:
    """A material rejected by validation; other materials still run."""
    material_id: Optional[str]
    material_name: Optional[str]
    error: str
    details: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class BoardInstance:
    """
    One physical sheet opened during optimization, with placement and free space tracking.
    """

    def __init__(self, board_id: int, usable_width: float, usable_height: float, kerf: float):
        """
        Initialize a BoardInstance.

        Args:
            board_id: Sequential 0-based identifier
            usable_width, usable_height: Board dimensions after trim
            kerf: Kerf width in mm
        """
        self.board_id = board_id
        self.usable_width = usable_width
        self.usable_height = usable_height
        self.kerf = kerf
        self.used_rectangles: List[PlacedRectangle] = []
        # Initialize with one free rectangle representing the full usable area
        self.free_rectangles: List[FreeRectangle] = [
            FreeRectangle(0.0, 0.0, usable_width, usable_height)
        ]
        # Cut length introduced by splits; trim cuts are accounted per board in metrics
        self.cut_length_mm = 0.0

    def place_part(self, unit: UnitRequest, free_rect: FreeRectangle,
                   rotated: bool) -> PlacedRectangle:
        """
        Place a unit request at the top-left corner of a free rectangle.

        Args:
            unit: Unit request to place
            free_rect: Free rectangle of this board to consume
            rotated: Whether the part is rotated 90 degrees

        Returns:
            The PlacedRectangle recorded on this board

        Raises:
            ValueError: If the free rectangle is not on this board or the part does not fit
        """
        if free_rect not in self.free_rectangles:
            raise ValueError(f"{free_rect} is not a free rectangle of board {self.board_id}")

        part_width, part_height = (unit.h_mm, unit.w_mm) if rotated else (unit.w_mm, unit.h_mm)
        if not free_rect.can_fit(part_width, part_height):
            raise ValueError(
                f"Part {unit.id} ({part_width}x{part_height}) does not fit {free_rect}"
            )

        placed = PlacedRectangle(
            id=unit.id,
            x=free_rect.x,
            y=free_rect.y,
            width=part_width,
            height=part_height,
            rotated=rotated
        )
        self.used_rectangles.append(placed)

        self._split_free_rectangle(free_rect, part_width, part_height)
        self._prune_contained_rectangles()
        logger.debug(f"Board {self.board_id}: {len(self.free_rectangles)} free rectangles "
                     f"after placing {unit.id}")

        return placed

    def _split_free_rectangle(self, free_rect: FreeRectangle, part_width: float,
                              part_height: float) -> None:
        """
        Split a free rectangle after part placement, creating new free rectangles.
        Implements guillotine cutting: a full-width horizontal cut below the part,
        then a vertical cut beside it bounded by the part's height.

        Args:
            free_rect: Free rectangle being split
            part_width, part_height: Actual dimensions of the placed part
        """
        self.free_rectangles.remove(free_rect)

        # Cut lines needed to free the part from this region
        if part_height < free_rect.height - EPSILON:
            self.cut_length_mm += free_rect.width
        if part_width < free_rect.width - EPSILON:
            self.cut_length_mm += part_height

        new_rectangles = []

        # Right remainder, as tall as the part
        right_rect = FreeRectangle(
            x=free_rect.x + part_width + self.kerf,
            y=free_rect.y,
            width=free_rect.width - part_width - self.kerf,
            height=part_height
        )
        if not right_rect.is_degenerate():
            new_rectangles.append(right_rect)

        # Bottom remainder, across the full width
        bottom_rect = FreeRectangle(
            x=free_rect.x,
            y=free_rect.y + part_height + self.kerf,
            width=free_rect.width,
            height=free_rect.height - part_height - self.kerf
        )
        if not bottom_rect.is_degenerate():
            new_rectangles.append(bottom_rect)

        self.free_rectangles.extend(new_rectangles)

    def _prune_contained_rectangles(self) -> None:
        """Drop free rectangles fully contained in another one, keeping the larger."""
        if len(self.free_rectangles) <= 1:
            return

        kept: List[FreeRectangle] = []
        for i, rect in enumerate(self.free_rectangles):
            contained = False
            for j, other in enumerate(self.free_rectangles):
                if i == j or not other.contains(rect):
                    continue
                # Identical rectangles: keep the first occurrence
                if rect.contains(other) and i < j:
                    continue
                contained = True
                break
            if not contained:
                kept.append(rect)
        self.free_rectangles = kept

    def get_usable_area(self) -> float:
        return self.usable_width * self.usable_height

    def get_used_area(self) -> float:
        return sum(rect.get_area() for rect in self.used_rectangles)

    def get_utilization_percentage(self) -> float:
        """
        Calculate the percentage of usable board area covered by parts.

        Returns:
            Utilization percentage (0-100)
        """
        total_area = self.get_usable_area()
        if total_area == 0:
            return 0.0
        return (self.get_used_area() / total_area) * 100

    def __str__(self) -> str:
        return (f"BoardInstance({self.board_id}, {self.usable_width}x{self.usable_height}, "
                f"{len(self.used_rectangles)} parts)")

    def __repr__(self) -> str:
        return self.__str__()
