"""
Conti Main Entry Point

Validate a storyboard batch request and print how it would be scheduled.

    python -m conti plan request.json [--config PATH] [--debug]
"""

import sys
import json
import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional

from conti.core.config import BatchEngineConfig, load_config
from conti.core.exceptions import ConfigurationError, RequestValidationError
from conti.core.logging_config import LogLevel, setup_logging, get_logger
from conti.models.request import BatchProcessingRequest, parse_batch_request
from conti.pipelines.batch_scheduler import split_into_batches

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_REQUEST = 2


def build_plan(request: BatchProcessingRequest, config: BatchEngineConfig) -> Dict[str, Any]:
    """
    Describe how a request will be scheduled.

    The minimum duration counts only the engine's own pauses (stagger offsets
    and inter-batch delays); provider time and retries come on top.
    """
    options = request.options
    batches = split_into_batches(request.remaining_shots, options.batch_size)

    stagger = sum((len(batch) - 1) * config.stagger_interval_seconds for batch in batches)
    delays = max(len(batches) - 1, 0) * options.delay_between_batches_seconds

    return {
        "story_id": request.story_id,
        "reference_shot": request.reference_shot.shot_number,
        "batches": [[shot.shot_number for shot in batch] for batch in batches],
        "max_retries": options.max_retries,
        "maintain_consistency": options.maintain_consistency,
        "fallback_to_sequential": options.fallback_to_sequential,
        "estimated_min_seconds": stagger + delays,
    }


def format_plan(plan: Dict[str, Any]) -> str:
    lines = [
        f"Story: {plan['story_id']}",
        f"Reference shot: {plan['reference_shot']}"
        + (" (consistency on)" if plan["maintain_consistency"] else " (consistency off)"),
        f"Batches: {len(plan['batches'])}",
    ]
    for number, shots in enumerate(plan["batches"], start=1):
        lines.append(f"  Batch {number}: shots {', '.join(str(n) for n in shots)}")
    lines.append(f"Max retries per shot: {plan['max_retries']}")
    lines.append(f"Sequential fallback: {'on' if plan['fallback_to_sequential'] else 'off'}")
    lines.append(f"Estimated minimum duration: {plan['estimated_min_seconds']:.0f}s")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the Conti CLI."""
    parser = argparse.ArgumentParser(
        prog="conti",
        description="Conti - storyboard batch image generation"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    plan_parser = subparsers.add_parser(
        "plan",
        help="Validate a batch request file and print its schedule"
    )
    plan_parser.add_argument(
        "request",
        type=str,
        help="Path to a JSON batch request"
    )
    plan_parser.add_argument(
        "--config", "-c",
        type=str,
        help="Path to engine configuration file"
    )
    plan_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(Path(args.config) if args.config else None)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_ERROR

    # Logs go to stderr so the plan on stdout stays clean
    log_level = LogLevel.DEBUG if args.debug else LogLevel.from_name(config.log_level)
    setup_logging(level=log_level, verbose=args.debug, stream=sys.stderr)
    logger = get_logger("main")

    request_path = Path(args.request)
    try:
        with open(request_path, 'r', encoding='utf-8') as f:
            payload = json.load(f)
    except OSError as e:
        print(f"Cannot read request file: {e}", file=sys.stderr)
        return EXIT_ERROR
    except json.JSONDecodeError as e:
        print(f"Request file is not valid JSON: {e}", file=sys.stderr)
        return EXIT_INVALID_REQUEST

    try:
        request = parse_batch_request(payload)
    except RequestValidationError as e:
        logger.debug(f"Rejected request from {request_path}")
        print(str(e), file=sys.stderr)
        return EXIT_INVALID_REQUEST

    print(format_plan(build_plan(request, config)))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
