"""
Command line entry point: optimize a JSON request file and write the response.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from config import DEFAULT_LOG_LEVEL
from data_models import RequestValidationError
from orchestrator import optimize_request
from simple_reports import generate_cutlist_csv, generate_cutting_layout_text
from utils import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_MATERIAL_FAILED = 1
EXIT_BAD_REQUEST = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opticut",
        description="Optimize panel cutting layouts for a JSON request file."
    )
    parser.add_argument("request", help="Path to the request JSON ({\"materials\": [...]}), or - for stdin")
    parser.add_argument("-o", "--output", help="Write the response JSON here instead of stdout")
    parser.add_argument("--parallel", action="store_true", help="Optimize materials in worker processes")
    parser.add_argument("--workers", type=int, default=None, help="Worker process count with --parallel")
    parser.add_argument("--report-text", help="Write a text cutting layout report")
    parser.add_argument("--report-csv", help="Write a CSV cut list")
    parser.add_argument("--pdf", help="Write PDF cutting layouts (one page per board)")
    parser.add_argument("--order-name", default="", help="Order name shown in reports")
    parser.add_argument("--log-level", default=DEFAULT_LOG_LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        type=str.upper)
    return parser


def load_request(path: str):
    if path == "-":
        return json.load(sys.stdin)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        request = load_request(args.request)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read request {args.request}: {e}")
        return EXIT_BAD_REQUEST

    try:
        response = optimize_request(request, parallel=args.parallel, max_workers=args.workers)
    except RequestValidationError as e:
        logger.error(str(e))
        return EXIT_BAD_REQUEST

    response_json = json.dumps(response, indent=2, ensure_ascii=False)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(response_json)
        logger.info(f"Response written to {args.output}")
    else:
        print(response_json)

    results = response["results"]
    if args.report_text:
        with open(args.report_text, "w", encoding="utf-8") as f:
            f.write(generate_cutting_layout_text(results, args.order_name))
    if args.report_csv:
        with open(args.report_csv, "w", encoding="utf-8", newline="") as f:
            f.write(generate_cutlist_csv(results))
    if args.pdf:
        from pdf_layout_generator import generate_cutting_layout_pdf
        generate_cutting_layout_pdf(results, args.order_name or "OptiCut", args.pdf)

    if any("error" in result for result in results):
        return EXIT_MATERIAL_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
