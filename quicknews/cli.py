"""Command-line interface for the quicknews service."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import pprint
from pathlib import Path
from typing import List, Optional

from .config import parse_app_config, parse_env_config
from .errors import NotificationDeliveryError
from .service import build_service

logger = logging.getLogger(__name__)

COMMANDS = ("serve", "stats", "send-summary")


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Serve aggregated RSS news and track link clicks."
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=COMMANDS,
        default="serve",
        help="serve the HTTP API (default), print click stats, or send today's summary.",
    )
    parser.add_argument(
        "--config",
        default="configs/config.xml",
        help="Path to the main configuration XML file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING). Overrides config.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional path to a log file. Overrides config.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for 'serve'. Overrides config and $PORT.",
    )
    return parser


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Initialise logging according to options."""
    log_level = getattr(logging, level_name.upper(), None)
    if not isinstance(log_level, int):
        raise ValueError(f"Unsupported log level: {level_name}")

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(log_level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        if log_path.parent and not log_path.parent.exists():
            log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logger.debug(
            "Logger initialised with level %s and file output to %s",
            level_name.upper(),
            log_path,
        )
    else:
        logger.debug(
            "Logger initialised with console output at level %s", level_name.upper()
        )


def serve(service, host: str, port: int) -> None:
    import uvicorn

    from .api import create_app

    logger.info("Backend running on %s:%d", host, port)
    uvicorn.run(create_app(service), host=host, port=port, log_config=None)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = parse_app_config(args.config)

        if app_config.env_file:
            os.environ.update(parse_env_config(app_config.env_file))

        # CLI overrides config.
        log_level = args.log_level or app_config.logging.level
        log_file = args.log_file or app_config.logging.file
        configure_logging(log_level, log_file)

        config_dict = dataclasses.asdict(app_config)
        if config_dict["database"].get("connection_string"):
            config_dict["database"]["connection_string"] = "***MASKED***"
        logger.info("Active Configuration:\n%s", pprint.pformat(config_dict))

        service = build_service(app_config)

        if args.command == "stats":
            print(json.dumps(service.stats(), indent=2))
        elif args.command == "send-summary":
            print(json.dumps(service.send_summary()))
        else:
            serve(service, app_config.server.host, args.port or app_config.server.port)
    except ValueError as exc:
        parser.error(str(exc))
    except NotificationDeliveryError as exc:
        logger.error("Failed to send summary: %s", exc)
        return 1
    except (RuntimeError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1

    return 0
