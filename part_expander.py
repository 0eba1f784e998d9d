"""
Part expansion and ordering for the OptiCut optimizer.
Turns a declarative part list into an ordered queue of unit placement requests.
"""

import logging
import random
from itertools import groupby
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from config import DEFAULT_SORT_STRATEGY, SORT_STRATEGIES
from data_models import InvalidInputError, Part, UnitRequest

logger = logging.getLogger(__name__)


def _area_key(part: Part) -> Tuple:
    return (-part.get_area(), -max(part.w_mm, part.h_mm))


def _longest_side_key(part: Part) -> Tuple:
    return (-max(part.w_mm, part.h_mm), -part.get_area())


def _height_key(part: Part) -> Tuple:
    return (-part.h_mm, -part.get_area())


def _width_key(part: Part) -> Tuple:
    return (-part.w_mm, -part.get_area())


def _perimeter_key(part: Part) -> Tuple:
    return (-(part.w_mm + part.h_mm), -part.get_area())


SORT_KEYS: Dict[str, Callable[[Part], Tuple]] = {
    'area': _area_key,
    'longest_side': _longest_side_key,
    'height': _height_key,
    'width': _width_key,
    'perimeter': _perimeter_key,
}


def order_parts(parts: Sequence[Part], seed: Optional[int] = None,
                strategy: str = DEFAULT_SORT_STRATEGY) -> List[int]:
    """
    Order part indices for placement, largest first.

    Parts ranking equal under the strategy keep their list order, unless a seed is
    given, in which case each group of equals is shuffled with a seeded generator.

    Args:
        parts: Parts of one material
        seed: Optional seed for permuting equally ranked parts
        strategy: One of config.SORT_STRATEGIES

    Returns:
        Indices into parts, in placement order
    """
    if strategy not in SORT_STRATEGIES:
        raise InvalidInputError(f"Unknown sort strategy: {strategy}")
    rank = SORT_KEYS[strategy]

    ordered = sorted(range(len(parts)), key=lambda i: (rank(parts[i]), i))
    if seed is None:
        return ordered

    rng = random.Random(seed)
    result: List[int] = []
    for _, group in groupby(ordered, key=lambda i: rank(parts[i])):
        group = list(group)
        rng.shuffle(group)
        result.extend(group)
    return result


def expand_parts(parts: Sequence[Part], seed: Optional[int] = None,
                 strategy: str = DEFAULT_SORT_STRATEGY) -> List[UnitRequest]:
    """
    Expand parts into one unit request per copy, in placement order.

    Args:
        parts: Parts of one material
        seed: Optional seed for permuting equally ranked parts
        strategy: Ordering strategy

    Returns:
        Ordered list of UnitRequest objects
    """
    unit_requests = []
    for index in order_parts(parts, seed, strategy):
        part = parts[index]
        for _ in range(part.qty):
            unit_requests.append(UnitRequest(
                id=part.id,
                w_mm=part.w_mm,
                h_mm=part.h_mm,
                allow_rot_90=part.can_rotate(),
                grain_locked=part.grain_locked,
                part_index=index
            ))

    logger.debug(f"Expanded {len(parts)} parts into {len(unit_requests)} unit requests "
                 f"(strategy={strategy}, seed={seed})")
    return unit_requests
