"""Infinite Adventure dev launcher: runs the API server with auto-reload."""

import argparse
import os
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")


def _server_env(args: argparse.Namespace) -> dict[str, str]:
    """Environment for the server process; CLI flags override .env."""
    env = os.environ.copy()
    if args.data_dir:
        env["DATA_DIR"] = str(args.data_dir.resolve())
    if args.offline:
        env["GEMINI_API_KEY"] = ""
    return env


def main() -> int:
    parser = argparse.ArgumentParser(description="Infinite Adventure dev launcher")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", default=os.getenv("BACKEND_PORT", "13013"))
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Where the save slot is kept (default: ./data)")
    parser.add_argument("--offline", action="store_true",
                        help="Ignore GEMINI_API_KEY and play against the canned EchoModel")
    parser.add_argument("--no-reload", action="store_true",
                        help="Do not restart the server on source changes")
    args = parser.parse_args()

    cmd = [sys.executable, "-m", "uvicorn", "backend.app:app",
           "--host", args.host, "--port", str(args.port)]
    if not args.no_reload:
        cmd.append("--reload")

    mode = "offline" if args.offline or not os.getenv("GEMINI_API_KEY") else "online"
    print(f"Starting Infinite Adventure ({mode}) on http://localhost:{args.port} ...")
    proc = subprocess.Popen(cmd, cwd=ROOT, env=_server_env(args))
    try:
        return proc.wait()
    except KeyboardInterrupt:
        print("\nShutting down...")
        proc.terminate()
        return proc.wait()


if __name__ == "__main__":
    sys.exit(main())
