"""Command-line entry point for verifying an already parsed bibliography."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError

from bibverify.api import VerificationClient
from bibverify.config import VerificationConfig
from bibverify.exceptions import ConfigError

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Verify citations against scholarly registries")
    subparsers = parser.add_subparsers(dest="command", required=True)

    verify = subparsers.add_parser(
        "verify", help="Verify a JSON array of citation objects and print flat records"
    )
    verify.add_argument("input", help="Path to a JSON file with a list of citations, or '-' for stdin")
    verify.add_argument("--output", "-o", type=Path, default=None, help="Write records to this file")
    verify.add_argument("--workers", type=int, default=None, help="Citations verified concurrently")
    verify.add_argument("--no-cache", action="store_true", help="Disable the response cache")
    verify.add_argument("--mailto", default=None, help="Contact email for polite registry pools")
    verify.add_argument(
        "--registry",
        action="append",
        dest="registries",
        default=None,
        help="Registry to query (repeatable): openalex, crossref, semanticscholar",
    )
    verify.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    return parser


def _load_citations(source: str) -> List[Dict[str, Any]]:
    if source == "-":
        payload = json.load(sys.stdin)
    else:
        with Path(source).open(encoding="utf-8") as fp:
            payload = json.load(fp)

    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise ValueError("Input must be a JSON array of citation objects")
    return payload


def _config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.workers is not None:
        overrides["batch_workers"] = args.workers
    if args.no_cache:
        overrides["cache_backend"] = "none"
    if args.mailto:
        overrides["mailto"] = args.mailto
    if args.registries:
        overrides["registries"] = args.registries
        overrides["primary_registry"] = args.registries[0]
    return overrides


def _run_verify(args: argparse.Namespace) -> int:
    try:
        citations = _load_citations(args.input)
    except (OSError, ValueError) as exc:
        print(f"error: could not read citations: {exc}", file=sys.stderr)
        return 2

    try:
        config = VerificationConfig(**_config_overrides(args))
    except (ValidationError, ConfigError) as exc:
        print(f"error: invalid configuration: {exc}", file=sys.stderr)
        return 2

    client = VerificationClient(config)
    results = client.verify_batch(citations)
    records = [result.to_record() for result in results]

    summary = client.summarize(results)
    logger.info(
        "Verified %s citations: %s verified, %s warnings, %s issues, %s duplicates",
        summary.total,
        summary.verified,
        summary.warnings,
        summary.issues,
        summary.duplicates,
    )

    rendered = json.dumps(records, indent=2, ensure_ascii=False)
    if args.output is not None:
        args.output.write_text(rendered + "\n", encoding="utf-8")
    else:
        print(rendered)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands: dict[str, Any] = {
        "verify": _run_verify,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.error("Unknown command")
        return 1

    return handler(args)


if __name__ == "__main__":
    sys.exit(main())
