"""
Logging setup and display formatting shared by the CLI and reports.
"""

import logging

from config import LOG_FORMAT, DEFAULT_LOG_LEVEL


def setup_logging(log_level: str = DEFAULT_LOG_LEVEL) -> None:
    """
    Configure root logging for the optimizer.

    Args:
        log_level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL), case-insensitive
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()]
    )

    # Plotting libraries are chatty at DEBUG
    for noisy in ('matplotlib', 'PIL'):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def format_area(area_mm2: float) -> str:
    """
    Format a board or part area, in m² for sheet-sized areas.

    Args:
        area_mm2: Area in mm²

    Returns:
        Display string such as "5.70 m²" or "48000 mm²"
    """
    if area_mm2 >= 100_000:
        return f"{area_mm2 / 1_000_000:.2f} m²"
    return f"{area_mm2:.0f} mm²"


def format_length(length_mm: float) -> str:
    """Format a cut length, switching to metres above one metre."""
    if length_mm >= 1_000:
        return f"{length_mm / 1_000:.2f} m"
    return f"{length_mm:.0f} mm"


def format_percentage(value: float) -> str:
    return f"{value:.2f}%"


def format_dimension(value: float) -> str:
    """Format a millimetre dimension without a trailing .0 for whole numbers."""
    if float(value).is_integer():
        return f"{int(value)}"
    return f"{value:.1f}"
