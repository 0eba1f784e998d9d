"""
PDF cutting layout generator for OptiCut.
Draws one page per opened board with trims, placed parts and rotation symbols.
"""

import matplotlib.pyplot as plt
import matplotlib.patches as patches
from matplotlib.backends.backend_pdf import PdfPages
from typing import List, Dict, Any, Optional, Sequence
import logging
import io

from simple_reports import group_placements_by_board
from utils import format_dimension, format_length, format_percentage

logger = logging.getLogger(__name__)


class PDFLayoutGenerator:
    """Generate visual PDF cutting layouts from optimization results."""

    def __init__(self):
        # Light wood and laminate tones, cycled per part
        self.colors = [
            '#F5DEB3', '#E6C9A8', '#D7E4C0', '#CFE0E8', '#F2D0C4',
            '#E8E0F0', '#FAF0BE', '#D9CBB0', '#C9DDD3', '#F0D9E4',
        ]
        self.waste_color = '#BDBDBD'

    def generate_cutting_layouts_pdf(self, results: Sequence[Dict[str, Any]], order_name: str = "OptiCut",
                                     output_path: Optional[str] = None) -> bytes:
        """Generate PDF cutting layouts, one page per board of every successful material."""

        pdf_buffer = io.BytesIO()

        try:
            with PdfPages(pdf_buffer) as pdf:
                pages = 0
                for result in results:
                    if 'error' in result:
                        continue
                    for board_id, placements in group_placements_by_board(result).items():
                        self._create_board_layout_page(pdf, result, board_id, placements, order_name)
                        pages += 1
                if pages == 0:
                    self._create_empty_page(pdf, order_name)

            pdf_bytes = pdf_buffer.getvalue()
            pdf_buffer.close()

            if output_path:
                with open(output_path, 'wb') as f:
                    f.write(pdf_bytes)
                logger.info(f"PDF cutting layout saved to {output_path}")

            return pdf_bytes

        except Exception as e:
            logger.error(f"Error generating PDF layout: {e}")
            raise

    def _create_board_layout_page(self, pdf: PdfPages, result: Dict[str, Any], board_id: int,
                                  placements: List[Dict[str, Any]], order_name: str):
        """Create a single board layout page."""

        debug = result['debug']
        board_width = debug['board_width']
        board_height = debug['board_height']
        usable_area = debug['usable_width'] * debug['usable_height']
        used_area = sum(p['w_mm'] * p['h_mm'] for p in placements)
        utilization = used_area / usable_area * 100 if usable_area > 0 else 0.0

        cut_lengths = result.get('board_cut_lengths', {})
        cut_length = cut_lengths.get(board_id, cut_lengths.get(str(board_id), 0.0))

        fig, ax = plt.subplots(1, 1, figsize=(11, 8.5))
        fig.patch.set_facecolor('white')

        header_lines = [
            f"Order: {order_name}",
            f"Material: {result['material_name']} ({result['material_id']}) - Board {board_id}",
            f"Board Size: {format_dimension(board_width)} mm x {format_dimension(board_height)} mm",
            f"Utilization: {format_percentage(utilization)}   Cut length: {format_length(cut_length)}",
            "Symbols: ↻ = Rotated Part"
        ]
        for i, line in enumerate(header_lines):
            weight = 'bold' if i < 2 else 'normal'
            fig.text(0.5, 0.98 - i * 0.025, line, ha='center', va='top', fontsize=9, fontweight=weight)

        # Origin at the top-left corner, as in the placement coordinates
        ax.set_xlim(0, board_width)
        ax.set_ylim(board_height, 0)
        ax.set_aspect('equal')

        # Waste and trims show as grey sheet behind the parts
        ax.add_patch(patches.Rectangle(
            (0, 0), board_width, board_height,
            linewidth=2, edgecolor='black', facecolor=self.waste_color
        ))

        for index, placement in enumerate(placements):
            self._place_part_on_layout(ax, placement, index)

        ax.set_xlabel('Width (mm)', fontsize=9)
        ax.set_ylabel('Height (mm)', fontsize=9)
        ax.grid(False)

        pdf.savefig(fig, facecolor='white')
        plt.close(fig)

    def _place_part_on_layout(self, ax, placement: Dict[str, Any], index: int):
        """Place a single part on the cutting layout."""
        x_pos, y_pos = placement['x_mm'], placement['y_mm']
        width, height = placement['w_mm'], placement['h_mm']
        is_rotated = placement['rot_deg'] == 90

        ax.add_patch(patches.Rectangle(
            (x_pos, y_pos), width, height,
            linewidth=1, edgecolor='black',
            facecolor=self.colors[index % len(self.colors)]
        ))

        symbols = " ↻" if is_rotated else ""
        label_text = f"{placement['id']}{symbols}\n{format_dimension(width)}×{format_dimension(height)}"

        if width > 600 and height > 400:
            font_size = 8
        elif width > 250 and height > 150:
            font_size = 6
        else:
            font_size = 4

        ax.text(x_pos + width / 2, y_pos + height / 2, label_text,
                ha='center', va='center', fontsize=font_size, fontweight='bold')

    def _create_empty_page(self, pdf: PdfPages, order_name: str):
        fig = plt.figure(figsize=(11, 8.5))
        fig.text(0.5, 0.5, f"Order: {order_name}\nNo boards were used", ha='center', va='center', fontsize=12)
        pdf.savefig(fig)
        plt.close(fig)


def generate_cutting_layout_pdf(results: Sequence[Dict[str, Any]], order_name: str = "OptiCut",
                                output_path: Optional[str] = None) -> bytes:
    """Generate PDF cutting layouts using the layout generator."""
    generator = PDFLayoutGenerator()
    return generator.generate_cutting_layouts_pdf(results, order_name, output_path)
