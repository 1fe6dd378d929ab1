"""Entry point: python -m memoir [serve]

- No args / "serve": run the memory tool server on stdio
"""

from __future__ import annotations

import asyncio
import logging
import sys

from memoir.config import load_config


def _setup_logging(level: str) -> None:
    # stdout carries the protocol; logs go to stderr
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _run_serve() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from memoir.server import MemoryServer

    server = MemoryServer(config)
    try:
        asyncio.run(server.run())
    except KeyboardInterrupt:
        pass


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "serve"

    if cmd == "serve":
        _run_serve()
    else:
        print("Usage: python -m memoir [serve]")
        print("  serve  — Memory tool server on stdio (default)")
        sys.exit(1)


if __name__ == "__main__":
    main()
