"""Configuration loading for quicknews."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional
from xml.etree import ElementTree as ET

from .models import FeedConfig

logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass
class EmailConfig:
    to_addr: Optional[str] = None
    from_addr: Optional[str] = None
    subject: Optional[str] = None


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class DatabaseConfig:
    enabled: bool = False
    connection_string: Optional[str] = None


@dataclass
class AppConfig:
    feeds_file: str
    env_file: Optional[str] = None
    ledger_file: str = "data.json"
    cache_ttl_minutes: float = 8.0
    fetch_timeout: float = 10.0
    concurrency: int = 10
    news_limit: int = 20
    ask_limit: int = 6
    server: ServerConfig = field(default_factory=ServerConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def parse_feeds_config(path: str) -> List[FeedConfig]:
    """Parse the OPML feed list and return feed definitions."""
    logger.info("Loading feed configuration from %s", path)
    tree = ET.parse(path)
    root = tree.getroot()
    body = root.find("body")
    feeds: List[FeedConfig] = []

    def walk(outline: ET.Element, current_category: Optional[str]) -> None:
        title = outline.attrib.get("title") or outline.attrib.get("text")
        feed_url = outline.attrib.get("xmlUrl")
        children = list(outline.findall("outline"))

        # Atom feeds are listed with type="atom" by some OPML exporters.
        if feed_url and outline.attrib.get("type", "rss") in ("rss", "atom"):
            feeds.append(
                FeedConfig(
                    category=current_category or title or "Uncategorized",
                    title=title or feed_url,
                    url=feed_url,
                )
            )
            logger.debug(
                "Registered feed '%s' (category='%s')", feed_url, feeds[-1].category
            )
            return

        next_category = title if title else current_category
        for child in children:
            walk(child, next_category)

    if body is None:
        raise ValueError(f"{path} is missing the <body> section.")

    for outline in body.findall("outline"):
        walk(outline, outline.attrib.get("title") or outline.attrib.get("text"))

    logger.info("Loaded %d feed endpoints from configuration", len(feeds))
    return feeds


def _resolve_path(base_path: Path, target_path: str) -> str:
    """Resolve a path relative to the base config file if it's not absolute."""
    target = Path(target_path)
    if target.is_absolute():
        return str(target)
    return str((base_path.parent / target).resolve())


def parse_env_config(path: str) -> Dict[str, str]:
    """Parse environment variables from XML."""
    env_vars: Dict[str, str] = {}
    if not path:
        return env_vars

    logger.info("Loading environment configuration from %s", path)
    try:
        tree = ET.parse(path)
    except (OSError, ET.ParseError) as exc:
        logger.warning("Failed to load environment config: %s", exc)
        raise

    for var in tree.getroot().findall("variable"):
        name = var.attrib.get("name")
        value = var.text
        if name and value:
            env_vars[name] = value.strip()
    return env_vars


def _number(root: ET.Element, tag: str, default: str, cast):
    raw = root.findtext(tag, default).strip() or default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"<{tag}> must be a number, got {raw!r}") from None


def parse_app_config(path: str) -> AppConfig:
    """Parse the main application configuration XML."""
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info("Loading application configuration from %s", config_path)
    tree = ET.parse(config_path)
    root = tree.getroot()

    feeds_node = root.find("feeds")
    if feeds_node is None or not feeds_node.text:
        raise ValueError("Config missing <feeds> path")
    feeds_file = _resolve_path(config_path, feeds_node.text.strip())

    env_node = root.find("env")
    env_file = (
        _resolve_path(config_path, env_node.text.strip())
        if env_node is not None and env_node.text
        else None
    )

    ledger_file = _resolve_path(config_path, root.findtext("ledger", "data.json").strip())

    cache_ttl_minutes = _number(root, "cache-ttl-minutes", "8", float)
    if cache_ttl_minutes <= 0:
        raise ValueError("<cache-ttl-minutes> must be positive.")
    fetch_timeout = _number(root, "fetch-timeout", "10", float)
    concurrency = _number(root, "concurrency", "10", int)
    news_limit = _number(root, "news-limit", "20", int)
    ask_limit = _number(root, "ask-limit", "6", int)

    server = ServerConfig()
    server_node = root.find("server")
    if server_node is not None:
        server.host = server_node.findtext("host", server.host).strip() or server.host
        server.port = _number(server_node, "port", str(server.port), int)
    if os.environ.get("PORT"):
        server.port = int(os.environ["PORT"])

    email_node = root.find("email")
    email = EmailConfig()
    if email_node is not None:
        email.to_addr = email_node.findtext("to") or None
        email.from_addr = email_node.findtext("from") or None
        email.subject = email_node.findtext("subject") or None

    log_node = root.find("logging")
    logging_config = LoggingConfig()
    if log_node is not None:
        logging_config.level = log_node.findtext("level", "INFO")
        log_file = log_node.findtext("file")
        if log_file:
            logging_config.file = _resolve_path(config_path, log_file)

    db_node = root.find("database")
    db_config = DatabaseConfig()
    if db_node is not None:
        db_config.enabled = db_node.findtext("enabled", "false").lower() == "true"
        db_config.connection_string = db_node.findtext("connection-string") or None

    return AppConfig(
        feeds_file=feeds_file,
        env_file=env_file,
        ledger_file=ledger_file,
        cache_ttl_minutes=cache_ttl_minutes,
        fetch_timeout=fetch_timeout,
        concurrency=concurrency,
        news_limit=news_limit,
        ask_limit=ask_limit,
        server=server,
        email=email,
        logging=logging_config,
        database=db_config,
    )
