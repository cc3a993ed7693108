#!/usr/bin/env python3
"""Lock-pick client - Main entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Setup paths
BASE_DIR = Path(__file__).parent.parent
SRC_DIR = BASE_DIR / "src"
sys.path.insert(0, str(SRC_DIR))

load_dotenv(BASE_DIR / ".env", override=True)


def setup_logging(log_dir: Path, level: str = "INFO", json_mode: bool = False, name: str = "lockpick") -> None:
    """Configure application logging.

    Args:
        log_dir: Directory for log files.
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_mode: If True, output structured JSON logs.
        name: Log file stem.
    """
    log_dir.mkdir(exist_ok=True)
    log_file = log_dir / f"{name}.log"

    # Console output belongs to the rich views, so the stream handler only shows warnings
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.WARNING)
    handlers = [
        stream_handler,
        logging.FileHandler(log_file, mode="a", encoding="utf-8"),
    ]

    if json_mode:
        # Structured JSON logging for production
        import json

        class JsonFormatter(logging.Formatter):
            def format(self, record: logging.LogRecord) -> str:
                log_entry = {
                    "timestamp": self.formatTime(record),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                }
                if record.exc_info:
                    log_entry["exception"] = self.formatException(record.exc_info)
                return json.dumps(log_entry)

        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
        )

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        handlers=handlers,
    )

    logger = logging.getLogger("lockpick")
    logger.info(f"Logging to: {log_file}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a lock-pick client at the table")
    parser.add_argument("--config", type=Path, default=BASE_DIR / "config.yaml", help="Path to config.yaml")
    parser.add_argument("--roster", type=Path, default=BASE_DIR / "roster.yaml", help="Path to the table roster")
    parser.add_argument("--user", help="Local user id (overrides config)")
    parser.add_argument("--gm", action="store_true", help="Run as a GM client")
    return parser.parse_args()


async def main() -> None:
    """Main entry point for a lock-pick client."""
    from rich.console import Console

    from lockpick.application import LockPickApplication
    from lockpick.config import LockPickConfig
    from lockpick.console import CommandShell, ConsoleChat
    from lockpick.sim.roster import load_roster

    args = parse_args()

    # Load and validate configuration
    try:
        config = LockPickConfig.load(args.config)
        table = load_roster(args.roster)
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.user:
        config.client.user_id = args.user
        config.client.user_name = table.user_names.get(args.user, args.user)
        config.client.is_gm = args.gm or table.users.is_gm(args.user)
    elif args.gm:
        config.client.is_gm = True

    setup_logging(
        log_dir=BASE_DIR / "logs",
        level=config.logging.level,
        json_mode=config.logging.json_mode,
        name=f"lockpick-{config.client.user_id}",
    )

    logger = logging.getLogger("lockpick")
    logger.info("Lock-pick client starting...")

    console = Console()
    actor_names = {actor.ref: actor.name for actor in table.actors.all()}
    app = LockPickApplication(
        config,
        actors=table.actors,
        users=table.users,
        chat=ConsoleChat(console, actor_names),
        console=console,
    )

    try:
        services = await app.initialize()
        shell = CommandShell(
            services.controller,
            services.registry,
            console,
            default_dc=config.challenge.default_dc,
            default_required=config.challenge.default_required_attempts,
        )
        await app.run(shell.run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        await app.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
