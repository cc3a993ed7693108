#!/usr/bin/env python3
"""Lock-pick relay - forwards every message to all other connected clients."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BASE_DIR / "src"))

load_dotenv(BASE_DIR / ".env", override=True)


async def main() -> None:
    from lockpick.config import LockPickConfig
    from lockpick.core.channel import serve_relay

    parser = argparse.ArgumentParser(description="Run the lock-pick websocket relay")
    parser.add_argument("--config", type=Path, default=BASE_DIR / "config.yaml")
    parser.add_argument("--host", help="Bind host (overrides config)")
    parser.add_argument("--port", type=int, help="Bind port (overrides config)")
    args = parser.parse_args()

    config = LockPickConfig.load(args.config)
    logging.basicConfig(
        level=getattr(logging, config.logging.level),
        format=config.logging.format,
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    if sys.platform != "win32":
        import signal

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop.set)

    await serve_relay(args.host or config.relay.host, args.port or config.relay.port, stop=stop)


if __name__ == "__main__":
    asyncio.run(main())
