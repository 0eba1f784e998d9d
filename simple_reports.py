"""
Simple report generation for OptiCut results.
Creates basic text and CSV reports from response results.
"""

import csv
import io
from collections import defaultdict
from typing import Any, Dict, List, Sequence

from utils import format_area, format_dimension, format_length, format_percentage


def group_placements_by_board(result: Dict[str, Any]) -> Dict[int, List[Dict[str, Any]]]:
    """Group a result's placements by board_id, boards in ascending order."""
    boards = defaultdict(list)
    for placement in result.get('placements', []):
        boards[placement['board_id']].append(placement)
    return dict(sorted(boards.items()))


def generate_cutting_layout_text(results: Sequence[Dict[str, Any]], order_name: str = "") -> str:
    """
    Generate text-based cutting layout report.

    Args:
        results: Response results (successes and failures)
        order_name: Order name to include in report header

    Returns:
        Formatted text report
    """
    report_lines = []

    # Header
    if order_name:
        report_lines.append(f"CUTTING LAYOUT REPORT - ORDER: {order_name}")
    else:
        report_lines.append("CUTTING LAYOUT REPORT")

    report_lines.append("=" * 60)
    report_lines.append("")

    for result in results:
        if 'error' in result:
            report_lines.append(f"MATERIAL: {result.get('material_name') or ''} ({result.get('material_id')})")
            report_lines.append(f"REJECTED: {result['error']}")
            for detail in result.get('details', []):
                report_lines.append(f"  - {detail}")
            report_lines.append("")
            report_lines.append("-" * 60)
            report_lines.append("")
            continue

        metrics = result['metrics']
        debug = result['debug']
        report_lines.append(f"MATERIAL: {result['material_name']} ({result['material_id']})")
        report_lines.append(f"Board Size: {format_dimension(debug['board_width'])}mm x "
                            f"{format_dimension(debug['board_height'])}mm "
                            f"(usable {format_dimension(debug['usable_width'])}mm x "
                            f"{format_dimension(debug['usable_height'])}mm)")
        report_lines.append(f"Boards Used: {metrics['boards_used']}")
        report_lines.append(f"Parts Placed: {metrics['placed_count']}/{debug['panels_count']}")
        report_lines.append(f"Used Area: {format_area(metrics['used_area_mm2'])}")
        report_lines.append(f"Waste: {format_percentage(metrics['waste_pct'])}")
        report_lines.append(f"Total Cut Length: {format_length(metrics['total_cut_length_mm'])}")
        if 'board_usage' in result:
            usage = result['board_usage']
            report_lines.append(f"Full Boards (>= {format_percentage(usage['usage_limit_pct'])}): "
                                f"{usage['full_boards']}, extra area {usage['extra_area_m2']:.2f} m²")
        report_lines.append("")

        cut_lengths = result.get('board_cut_lengths', {})
        for board_id, placements in group_placements_by_board(result).items():
            cut_length = cut_lengths.get(board_id, cut_lengths.get(str(board_id), 0.0))
            report_lines.append(f"BOARD {board_id}: {len(placements)} parts, "
                                f"cut length {format_length(cut_length)}")
            report_lines.append("Part ID".ljust(20) + "Dimensions".ljust(15) + "Position".ljust(15) + "Notes")
            report_lines.append("-" * 70)

            for placement in placements:
                part_id = str(placement['id'])[:19]
                dimensions = f"{format_dimension(placement['w_mm'])}x{format_dimension(placement['h_mm'])}"
                position = f"({placement['x_mm']:.0f},{placement['y_mm']:.0f})"
                notes = "Rotated" if placement['rot_deg'] == 90 else ""

                report_lines.append(
                    part_id.ljust(20) +
                    dimensions.ljust(15) +
                    position.ljust(15) +
                    notes
                )
            report_lines.append("")

        if result.get('unplaced'):
            report_lines.append("UNPLACED PARTS:")
            for part in result['unplaced']:
                reason = part.get('reason') or ''
                report_lines.append(
                    str(part['id'])[:19].ljust(20) +
                    f"{format_dimension(part['w_mm'])}x{format_dimension(part['h_mm'])}".ljust(15) +
                    reason
                )
            report_lines.append("")

        report_lines.append("-" * 60)
        report_lines.append("")

    return "\n".join(report_lines)


def generate_cutlist_csv(results: Sequence[Dict[str, Any]]) -> str:
    """
    Generate a CSV cut list with one row per placed or unplaced part copy.

    Returns:
        CSV content as string
    """
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([
        'Material ID', 'Material Name', 'Part ID', 'Board ID', 'X Position (mm)',
        'Y Position (mm)', 'Width (mm)', 'Height (mm)', 'Rotated', 'Status'
    ])

    for result in results:
        if 'error' in result:
            continue

        for placement in result['placements']:
            writer.writerow([
                result['material_id'],
                result['material_name'],
                placement['id'],
                placement['board_id'],
                placement['x_mm'],
                placement['y_mm'],
                placement['w_mm'],
                placement['h_mm'],
                'Yes' if placement['rot_deg'] == 90 else 'No',
                'Placed'
            ])

        for part in result['unplaced']:
            writer.writerow([
                result['material_id'],
                result['material_name'],
                part['id'],
                '',
                '',
                '',
                part['w_mm'],
                part['h_mm'],
                '',
                f"Unplaced: {part.get('reason') or ''}".rstrip(': ')
            ])

    return output.getvalue()
