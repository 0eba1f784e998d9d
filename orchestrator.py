"""
Request orchestration: validates each material and runs the optimization pipeline on it.
"""

import logging
import time
from concurrent.futures import ProcessPoolExecutor
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from data_models import (Board, InvalidInputError, MaterialFailure, OptimizationResult,
                         Params, Part, RequestValidationError)
from metrics import (build_debug_info, calculate_board_cut_lengths,
                     calculate_board_usage, calculate_metrics)
from optimization_core import pack_unit_requests, pack_with_lookahead
from part_expander import expand_parts
from schemas import MaterialFailureOut, MaterialIn, OptimizationResultOut

logger = logging.getLogger(__name__)


class CuttingOptimizer:
    """
    Optimizes one material: expansion, packing and metrics.
    Instantiate one per material; it keeps no state between calls.
    """

    def __init__(self, board: Board, params: Params):
        self.board = board
        self.params = params

    def optimize(self, parts: Sequence[Part], material_id: str = "",
                 material_name: str = "") -> OptimizationResult:
        """
        Run the full pipeline on a part list.

        Args:
            parts: Parts of the material
            material_id, material_name: Echoed into the result

        Returns:
            OptimizationResult for the material

        Raises:
            InvalidInputError: If part ids are not unique
        """
        part_ids = [part.id for part in parts]
        if len(set(part_ids)) != len(part_ids):
            raise InvalidInputError(f"Part ids of material {material_id} are not unique")

        unit_requests = expand_parts(parts, self.params.seed, self.params.sort_strategy)

        deadline = None
        if self.params.time_budget_s is not None:
            deadline = time.monotonic() + self.params.time_budget_s

        if self.params.lookahead > 0:
            outcome = pack_with_lookahead(unit_requests, self.board, self.params.kerf_mm,
                                          self.params.lookahead, deadline)
        else:
            outcome = pack_unit_requests(unit_requests, self.board, self.params.kerf_mm, deadline)

        board_cut_lengths = calculate_board_cut_lengths(outcome.boards, self.board)
        metrics = calculate_metrics(outcome.placements, outcome.unplaced,
                                    outcome.boards, board_cut_lengths)

        return OptimizationResult(
            material_id=material_id,
            material_name=material_name,
            placements=outcome.placements,
            unplaced=outcome.unplaced,
            metrics=metrics,
            board_cut_lengths=board_cut_lengths,
            debug=build_debug_info(self.board, len(outcome.boards), len(unit_requests)),
            board_usage=calculate_board_usage(outcome.boards, self.params.usage_limit_pct)
        )


def _describe_validation_error(error: ValidationError) -> List[str]:
    details = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        details.append(f"{location}: {item.get('msg')}" if location else item.get("msg", ""))
    return details


def optimize_material(material: Mapping[str, Any]) -> Union[OptimizationResult, MaterialFailure]:
    """
    Validate and optimize one material of a request.

    Args:
        material: Raw material payload ({id, name, parts, board, params})

    Returns:
        OptimizationResult, or MaterialFailure if the material is invalid
    """
    material_id = material.get("id") if isinstance(material, Mapping) else None
    material_name = material.get("name") if isinstance(material, Mapping) else None
    material_id = None if material_id is None else str(material_id)
    material_name = None if material_name is None else str(material_name)

    try:
        validated = MaterialIn.model_validate(material)
        board, parts, params = validated.to_domain()
    except ValidationError as e:
        details = _describe_validation_error(e)
        logger.warning(f"Material {material_id} rejected: {'; '.join(details)}")
        return MaterialFailure(material_id, material_name, "invalid material", details)
    except InvalidInputError as e:
        logger.warning(f"Material {material_id} rejected: {e}")
        return MaterialFailure(material_id, material_name, "invalid material", [str(e)])

    start_time = time.perf_counter()
    logger.info(f"Processing material: {validated.name} ({validated.id}) - {len(parts)} parts")

    result = CuttingOptimizer(board, params).optimize(parts, validated.id, validated.name)

    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.info(f"{validated.name} complete in {duration_ms:.2f}ms "
                f"({result.metrics.boards_used} boards, {result.metrics.placed_count} placements, "
                f"{result.metrics.unplaced_count} unplaced, waste {result.metrics.waste_pct}%)")
    return result


def serialize_result(result: Union[OptimizationResult, MaterialFailure]) -> Dict[str, Any]:
    """Convert a material outcome into its response dictionary."""
    if isinstance(result, MaterialFailure):
        return MaterialFailureOut.model_validate(result.to_dict()).model_dump()
    return OptimizationResultOut.model_validate(result.to_dict()).model_dump(exclude_none=True)


def optimize_request(request: Mapping[str, Any], parallel: bool = False,
                     max_workers: Optional[int] = None) -> Dict[str, Any]:
    """
    Optimize every material of a request independently.

    Args:
        request: Request payload with a `materials` list
        parallel: Run materials in separate worker processes
        max_workers: Worker process count when parallel

    Returns:
        Response payload {"results": [...]} in request order

    Raises:
        RequestValidationError: If the request has no materials list
    """
    if not isinstance(request, Mapping) or not isinstance(request.get("materials"), list):
        raise RequestValidationError("Invalid request data - missing materials array")

    materials = request["materials"]
    logger.info(f"Processing optimization request with {len(materials)} materials")
    start_time = time.perf_counter()

    if parallel and len(materials) > 1:
        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            outcomes = list(executor.map(optimize_material, materials))
    else:
        outcomes = [optimize_material(material) for material in materials]

    duration_ms = (time.perf_counter() - start_time) * 1000
    failures = sum(1 for outcome in outcomes if isinstance(outcome, MaterialFailure))
    logger.info(f"All materials optimized in {duration_ms:.2f}ms ({failures} rejected)")

    return {"results": [serialize_result(outcome) for outcome in outcomes]}
