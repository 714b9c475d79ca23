"""
Steel Estimator command line.

Reads one or more drawing PDFs, runs the five-pass estimation graph over each
and prints the result documents as JSON. Logging follows LOG_LEVEL and
LOG_FORMAT (json | text) from the environment or a .env file.
"""
import argparse
import asyncio
import json
import logging
import sys

from estimator.agents.config import LOG_FORMAT, LOG_LEVEL
from estimator.agents.estimation_graph import estimate_pdf
from estimator.services.errors import DocumentReadError
from estimator.services.logging_config import setup_logging

logger = logging.getLogger("estimator-cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="steel-estimator",
        description="Quantity takeoff and cost estimate from construction drawing PDFs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s framing.pdf --location "Houston, TX" --area "12,000 SF"
  %(prog)s S-101.pdf S-201.pdf --no-llm --output results.json
        """,
    )
    parser.add_argument("pdf_paths", nargs="+", help="Drawing PDF file(s)")
    parser.add_argument("--location", "-l", default=None, help="Project location (city, region or country)")
    parser.add_argument("--currency", "-c", default=None, help="Override the currency detected from the location")
    parser.add_argument("--area", default=None, help="Total building area, e.g. '12,000 SF' or '1100 m2'")
    parser.add_argument("--project-type", default=None, help="Benchmark project type (default: industrial)")
    parser.add_argument("--project-info", default=None, help="Extra project fields as a JSON object")
    parser.add_argument("--no-llm", action="store_true", help="Skip generative calls and use local extraction only")
    parser.add_argument("--output", "-o", default=None, help="Write the JSON results here instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def project_info_from_args(args: argparse.Namespace) -> dict:
    info = {}
    if args.project_info:
        extra = json.loads(args.project_info)
        if not isinstance(extra, dict):
            raise ValueError(f"expected a JSON object, got {type(extra).__name__}")
        info.update(extra)
    for key, value in (
        ("location", args.location),
        ("currency", args.currency),
        ("total_area", args.area),
        ("project_type", args.project_type),
    ):
        if value is not None:
            info[key] = value
    return info


def _print_progress(number: int, name: str, status: str) -> None:
    logger.info(f"Pass {number} {name}: {status}")


async def _estimate_all(paths, project_info: dict, generator) -> list:
    return list(await asyncio.gather(*(
        estimate_pdf(path, project_info, generator, _print_progress) for path in paths
    )))


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level="DEBUG" if args.verbose else LOG_LEVEL, json_output=LOG_FORMAT.lower() != "text")

    try:
        project_info = project_info_from_args(args)
    except ValueError as e:
        parser.error(f"--project-info is not a valid JSON object: {e}")

    generator = None
    if not args.no_llm:
        from estimator.services.llm_client import LLMClient
        generator = LLMClient()

    try:
        results = asyncio.run(_estimate_all(args.pdf_paths, project_info, generator))
    except DocumentReadError as e:
        logger.error(str(e))
        return 1

    payload = json.dumps(results if len(results) > 1 else results[0], indent=2, default=str)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(payload)
        logger.info(f"Wrote {len(results)} result(s) to {args.output}")
    else:
        sys.stdout.write(payload + "\n")
    return 0 if all(r["status"] != "no_data" for r in results) else 2


if __name__ == "__main__":
    sys.exit(main())
