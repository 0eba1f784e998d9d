"""
Request and response schema of the optimizer, validated at the boundary.
"""

from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from config import DEFAULT_KERF_MM, DEFAULT_SORT_STRATEGY, MAX_LOOKAHEAD_PANELS
from data_models import Board, Params, Part


def _coerce_label(value):
    if isinstance(value, bool):
        raise ValueError("must be a string or number")
    if isinstance(value, (int, float)):
        return str(value)
    return value


class PartIn(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    id: str
    w_mm: float = Field(..., gt=0)
    h_mm: float = Field(..., gt=0)
    qty: int = Field(..., ge=1)
    allow_rot_90: bool = False
    grain_locked: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, value):
        return _coerce_label(value)

    def to_domain(self) -> Part:
        return Part(
            part_id=self.id,
            w_mm=self.w_mm,
            h_mm=self.h_mm,
            qty=self.qty,
            allow_rot_90=self.allow_rot_90,
            grain_locked=self.grain_locked
        )


class BoardIn(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    w_mm: float = Field(..., gt=0)
    h_mm: float = Field(..., gt=0)
    trim_top_mm: float = Field(0.0, ge=0)
    trim_right_mm: float = Field(0.0, ge=0)
    trim_bottom_mm: float = Field(0.0, ge=0)
    trim_left_mm: float = Field(0.0, ge=0)

    @model_validator(mode="after")
    def check_usable_area(self):
        usable_width = self.w_mm - self.trim_left_mm - self.trim_right_mm
        usable_height = self.h_mm - self.trim_top_mm - self.trim_bottom_mm
        if usable_width <= 0 or usable_height <= 0:
            raise ValueError(f"trims leave no usable area ({usable_width}x{usable_height})")
        return self

    def to_domain(self) -> Board:
        return Board(
            w_mm=self.w_mm,
            h_mm=self.h_mm,
            trim_top_mm=self.trim_top_mm,
            trim_right_mm=self.trim_right_mm,
            trim_bottom_mm=self.trim_bottom_mm,
            trim_left_mm=self.trim_left_mm
        )


class ParamsIn(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    kerf_mm: float = Field(DEFAULT_KERF_MM, ge=0)
    seed: Optional[int] = None
    sort_strategy: Literal["area", "longest_side", "height", "width", "perimeter"] = DEFAULT_SORT_STRATEGY
    lookahead: int = Field(0, ge=0, le=MAX_LOOKAHEAD_PANELS)
    time_budget_s: Optional[float] = Field(None, gt=0)
    usage_limit_pct: Optional[float] = Field(None, ge=0, le=100)

    def to_domain(self) -> Params:
        return Params(
            kerf_mm=self.kerf_mm,
            seed=self.seed,
            sort_strategy=self.sort_strategy,
            lookahead=self.lookahead,
            time_budget_s=self.time_budget_s,
            usage_limit_pct=self.usage_limit_pct
        )


class MaterialIn(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    id: str
    name: str = ""
    parts: List[PartIn] = Field(default_factory=list)
    board: BoardIn
    params: ParamsIn = Field(default_factory=ParamsIn)

    @field_validator("id", "name", mode="before")
    @classmethod
    def normalize_label(cls, value):
        return _coerce_label(value)

    @model_validator(mode="after")
    def check_unique_part_ids(self):
        seen = set()
        duplicates = []
        for part in self.parts:
            if part.id in seen and part.id not in duplicates:
                duplicates.append(part.id)
            seen.add(part.id)
        if duplicates:
            raise ValueError(f"duplicate part ids: {', '.join(duplicates)}")
        return self

    def to_domain(self) -> Tuple[Board, List[Part], Params]:
        return (self.board.to_domain(),
                [part.to_domain() for part in self.parts],
                self.params.to_domain())


class PlacementOut(BaseModel):
    id: str
    x_mm: float
    y_mm: float
    w_mm: float
    h_mm: float
    rot_deg: Literal[0, 90]
    board_id: int


class UnplacedOut(BaseModel):
    id: str
    w_mm: float
    h_mm: float
    reason: Optional[str] = None


class MetricsOut(BaseModel):
    used_area_mm2: float
    board_area_mm2: float
    waste_pct: float
    placed_count: int
    unplaced_count: int
    boards_used: int
    total_cut_length_mm: float


class DebugOut(BaseModel):
    board_width: float
    board_height: float
    usable_width: float
    usable_height: float
    bins_count: int
    panels_count: int


class BoardUsageOut(BaseModel):
    usage_limit_pct: float
    full_boards: int
    extra_area_m2: float


class OptimizationResultOut(BaseModel):
    material_id: str
    material_name: str
    placements: List[PlacementOut]
    unplaced: List[UnplacedOut]
    metrics: MetricsOut
    board_cut_lengths: Dict[int, float]
    debug: DebugOut
    board_usage: Optional[BoardUsageOut] = None


class MaterialFailureOut(BaseModel):
    material_id: Optional[str] = None
    material_name: Optional[str] = None
    error: str
    details: List[str] = Field(default_factory=list)
