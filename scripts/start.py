#!/usr/bin/env python3
"""
Container entrypoint: migrate, then hand the process over to gunicorn.

Usage:
    python scripts/start.py              # release + serve
    python scripts/start.py --no-release # serve only (migrations run elsewhere)

Environment:
    PORT             listen port (default 8080)
    WEB_CONCURRENCY  gunicorn workers (default 2)
    GUNICORN_TIMEOUT worker timeout in seconds (default 60)
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _int_env(name: str, default: int, *, low: int, high: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        print(f"ERROR: {name}={raw!r} is not an integer.", flush=True)
        sys.exit(1)
    if value < low or value > high:
        print(f"ERROR: {name}={value} must be between {low} and {high}.", flush=True)
        sys.exit(1)
    return value


def gunicorn_argv(port: int, workers: int, timeout: int) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", str(workers),
        "--timeout", str(timeout),
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    parser = argparse.ArgumentParser(description="Run release and start gunicorn")
    parser.add_argument("--no-release", action="store_true", help="Skip migrations and seeding")
    args = parser.parse_args()

    port = _int_env("PORT", 8080, low=1, high=65535)
    workers = _int_env("WEB_CONCURRENCY", 2, low=1, high=64)
    timeout = _int_env("GUNICORN_TIMEOUT", 60, low=1, high=3600)

    if not args.no_release:
        print("=== Running release phase ===", flush=True)
        from scripts.release import run_release

        try:
            run_release()
        except Exception as e:
            print(f"Release failed: {e}", flush=True)
            sys.exit(1)

    print(f"=== Starting gunicorn on 0.0.0.0:{port} ({workers} workers) ===", flush=True)
    # exec keeps gunicorn as PID 1 so it receives container signals directly
    os.execvp("gunicorn", gunicorn_argv(port, workers, timeout))


if __name__ == "__main__":
    main()
