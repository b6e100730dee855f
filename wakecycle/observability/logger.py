"""
Structured logging for wakecycle.

structlog routed through stdlib logging:
  - JSON lines to a rotating file
  - console output as JSON (prod) or coloured key=value (dev)

Usage:
    from wakecycle.observability.logger import get_logger, setup_logging

    setup_logging(level="DEBUG", json_format=False)   # once, at host startup
    log = get_logger(__name__)
    log.info("scheduler.cycle.start", cycle_id=cycle_id)

Library code only calls get_logger(); configuring output is the host's job.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Optional

import structlog

from wakecycle.config.settings import LoggingConfig


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[str | Path] = "./data/logs",
    json_format: bool = True,
    console_output: bool = True,
    max_bytes: int = 20 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure structlog and stdlib logging.

    Args:
        level:          DEBUG | INFO | WARNING | ERROR | CRITICAL
        log_dir:        Directory for the rotating wakecycle.log; None disables the file.
        json_format:    JSON on the console too. False gives the coloured dev renderer.
        console_output: Emit to stdout at all.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    handlers: list[logging.Handler] = []

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_path / "wakecycle.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        handlers.append(console_handler)

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        handlers=handlers,
        force=True,
    )

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )
    for handler in handlers:
        handler.setFormatter(formatter)


def setup_logging_from_config(config: LoggingConfig) -> None:
    setup_logging(
        level=config.level,
        log_dir=config.log_dir,
        json_format=config.json_format,
        console_output=config.console_output,
    )


def get_logger(name: str = "wakecycle", **initial_values: Any) -> Any:
    """Return a structlog logger, optionally with permanently bound context."""
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


def bind_cycle(cycle_id: str) -> None:
    """Attach cycle_id to every log line emitted in this async context."""
    structlog.contextvars.bind_contextvars(cycle_id=cycle_id)


def clear_cycle() -> None:
    structlog.contextvars.unbind_contextvars("cycle_id")
