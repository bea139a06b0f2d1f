"""Command line runner."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from url_threat_scoring.config.settings import configure_logging, load_config
from url_threat_scoring.core.errors import ConfigError
from url_threat_scoring.domain.url.tables import load_tables
from url_threat_scoring.orchestrator.pipeline import PipelinePolicy, validate
from url_threat_scoring.orchestrator.precheck import analyze


def run_once(url: str, *, config_path: str | None = None, local_only: bool = False) -> str:
    config = load_config(config_path)
    configure_logging(config)
    tables = load_tables(config.tables_path)
    if local_only:
        result = analyze(url, tables)
    else:
        result = asyncio.run(validate(url, config=PipelinePolicy.from_config(config), tables=tables))
    return json.dumps(result.to_payload(), ensure_ascii=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="url-threat-scoring")
    parser.add_argument("--url", required=True, help="Candidate URL to score, e.g. https://example.com/login.")
    parser.add_argument("--config", help="Path to a YAML config file overriding the packaged defaults.")
    parser.add_argument(
        "--local-only",
        action="store_true",
        help="Run only the local heuristics; no probe, RDAP or threat-list requests.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        print(run_once(args.url, config_path=args.config, local_only=args.local_only))
    except ConfigError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 2
    return 0
