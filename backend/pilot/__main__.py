"""
Entry point: python -m pilot [WORKSPACE]

Serves the pilot backend for one workspace on localhost. The persisted
index is loaded and refreshed on startup.
"""
import argparse
import logging
import os
from pathlib import Path

import uvicorn

from .config import load_config
from .session import WorkspaceSession
from .web.app import create_app


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    parser = argparse.ArgumentParser(prog="pilot")
    parser.add_argument("workspace", nargs="?", default=".")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=int(os.getenv("PILOT_PORT", "8765")))
    parser.add_argument("--log-level", default=os.getenv("PILOT_LOG_LEVEL", "INFO"))
    args = parser.parse_args()

    configure_logging(args.log_level)
    cfg = load_config(Path(args.workspace).resolve())
    session = WorkspaceSession(cfg)
    app = create_app(session, open_workspace=True)

    print(f"Pilot backend for {cfg['workspace']} on http://{args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
