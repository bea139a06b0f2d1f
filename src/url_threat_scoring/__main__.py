"""CLI entrypoint for url_threat_scoring."""

from __future__ import annotations

from url_threat_scoring.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
