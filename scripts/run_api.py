#!/usr/bin/env python
"""
Run the Supply Pricing API (FastAPI) under uvicorn.

Usage:
    python scripts/run_api.py [--host HOST] [--port PORT] [--reload]
"""
import argparse
import subprocess
import sys
import os
from pathlib import Path


def build_command(args: argparse.Namespace) -> list[str]:
    cmd = [
        sys.executable, "-m", "uvicorn",
        "supply_pricing.api.main:app",
        "--host", args.host,
        "--port", str(args.port),
        "--log-level", args.log_level,
    ]
    if args.reload:
        cmd.append("--reload")
    return cmd


def main(argv=None):
    parser = argparse.ArgumentParser(description="Serve the supply records and price tier API")
    parser.add_argument("--host", default="127.0.0.1", help="bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="restart on source changes (development only)")
    parser.add_argument("--log-level", default="info", choices=["critical", "error", "warning", "info", "debug"])
    args = parser.parse_args(argv)

    project_root = Path(__file__).parent.parent
    os.chdir(project_root)

    env = os.environ.copy()
    src_path = str(project_root / "src")
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [src_path, env.get("PYTHONPATH")]))

    print(f"Serving supply pricing API on http://{args.host}:{args.port}" + (" (reload)" if args.reload else ""))
    try:
        return subprocess.run(build_command(args), env=env).returncode
    except KeyboardInterrupt:
        print("\nAPI stopped.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
