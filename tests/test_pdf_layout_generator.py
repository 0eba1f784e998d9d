import re

import pytest

pytest.importorskip("matplotlib")

import matplotlib
matplotlib.use("Agg")

from conftest import make_material
from orchestrator import optimize_request
from pdf_layout_generator import PDFLayoutGenerator, generate_cutting_layout_pdf

PAGE_PATTERN = re.compile(rb"/Type\s*/Page\b")


def test_pdf_has_a_page_per_board(tmp_path):
    material = make_material(parts=[{"id": "sq", "w_mm": 600, "h_mm": 600, "qty": 3}])
    results = optimize_request({"materials": [material]})["results"]
    assert results[0]["metrics"]["boards_used"] == 3

    output = tmp_path / "layout.pdf"
    pdf_bytes = generate_cutting_layout_pdf(results, "Order 7", str(output))

    assert pdf_bytes.startswith(b"%PDF")
    assert output.read_bytes() == pdf_bytes
    assert len(PAGE_PATTERN.findall(pdf_bytes)) == 3


def test_pdf_without_boards_still_renders():
    failed = {"material_id": "x", "material_name": None, "error": "invalid material", "details": []}
    pdf_bytes = PDFLayoutGenerator().generate_cutting_layouts_pdf([failed])
    assert pdf_bytes.startswith(b"%PDF")
    assert len(PAGE_PATTERN.findall(pdf_bytes)) == 1
