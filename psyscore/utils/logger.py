"""Logging configuration for the psyscore scoring engine.

The engine logs through four component loggers (scoring, matching,
combination and configuration) under the ``psyscore`` namespace. Importing
the engine never touches the host's logging. A host that wants the engine's
own console and file output calls ``setup_logging`` once, which configures
the ``psyscore`` logger tree only; library code only ever asks for a logger.
"""

import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger.json import JsonFormatter

ROOT_LOGGER = "psyscore"

COMPONENTS = {
    "scoring": f"{ROOT_LOGGER}.scoring",
    "matching": f"{ROOT_LOGGER}.matching",
    "combination": f"{ROOT_LOGGER}.combination",
    "configuration": f"{ROOT_LOGGER}.configuration",
}

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(component)-13s | %(message)s"
ENGINE_HANDLER_PREFIX = "psyscore."

# Operations slower than this are logged at WARNING
SLOW_OPERATION_MS = 1000


class EngineJsonFormatter(JsonFormatter):
    """JSON formatter that stamps every record with engine fields."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["component"] = getattr(record, "component", None)
        log_record["application"] = ROOT_LOGGER

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


class ComponentFilter(logging.Filter):
    """Tags records with the engine component that emitted them."""

    def __init__(self, component: str):
        super().__init__()
        self.component = component

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = self.component
        return True


class _DefaultComponentFilter(logging.Filter):
    """Lets the text format render records from non-component loggers."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = "-"
        return True


class LoggerConfig:
    """Logger configuration manager.

    Attributes:
        environment: development, test, staging or production
        log_level: Numeric level applied to the engine loggers
        json_output: Whether console output is JSON
        log_dir: Directory for rotating log files, or None for console only
    """

    def __init__(
        self,
        environment: str = "development",
        log_level: str = "INFO",
        log_format: str = "text",
        log_dir: Optional[str] = None,
    ):
        """Initialize logger configuration.

        Args:
            environment: Environment name
            log_level: Level name for the engine loggers
            log_format: "json" or "text" console output
            log_dir: Directory for rotating log files
        """
        self.environment = environment
        self.log_level = getattr(logging, log_level.upper())
        self.json_output = environment == "production" or log_format == "json"
        self.log_dir = Path(log_dir) if log_dir else None

        self._configure_engine_logger()
        self._configure_component_loggers()

    def _configure_engine_logger(self) -> None:
        """Replace the engine's own handlers; the host's loggers are left alone."""
        engine_logger = logging.getLogger(ROOT_LOGGER)
        engine_logger.setLevel(self.log_level)
        _remove_engine_handlers(engine_logger)

        # Test runs hand records to the host (pytest capture) untouched
        if self.environment == "test":
            engine_logger.propagate = True
            return

        formatter = self._formatter()
        console_level = logging.INFO if self.json_output else logging.DEBUG
        handlers = [self._console_handler(formatter, console_level)]

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(self._file_handler("error.log", formatter, logging.ERROR, backups=5))
            handlers.append(self._file_handler("scoring.log", formatter, logging.INFO, backups=10))

        for handler in handlers:
            handler.set_name(ENGINE_HANDLER_PREFIX + type(handler).__name__)
            engine_logger.addHandler(handler)

        # Engine output is written once, by its own handlers
        engine_logger.propagate = False

    def _configure_component_loggers(self) -> None:
        """Set levels and component tags on the engine loggers."""
        for component, logger_name in COMPONENTS.items():
            logger = logging.getLogger(logger_name)
            logger.setLevel(self.log_level)
            logger.filters = [f for f in logger.filters if not isinstance(f, ComponentFilter)]
            logger.addFilter(ComponentFilter(component))

    def _formatter(self) -> logging.Formatter:
        if self.json_output:
            return EngineJsonFormatter(fmt="%(timestamp)s %(level)s %(logger)s %(message)s")
        return logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    def _console_handler(self, formatter: logging.Formatter, level: int) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(_DefaultComponentFilter())
        return handler

    def _file_handler(self, filename: str, formatter: logging.Formatter, level: int, backups: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / filename,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=backups,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(_DefaultComponentFilter())
        return handler


def _remove_engine_handlers(engine_logger: logging.Logger) -> None:
    for handler in list(engine_logger.handlers):
        if (handler.get_name() or "").startswith(ENGINE_HANDLER_PREFIX):
            engine_logger.removeHandler(handler)
            handler.close()


# Keeps "No handlers could be found" quiet for hosts that never configure logging
logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())

# Global logger configuration instance
_logger_config: Optional[LoggerConfig] = None


def setup_logging(
    environment: str = "development",
    log_level: str = "INFO",
    log_format: str = "text",
    log_dir: Optional[str] = None,
) -> LoggerConfig:
    """Configure engine logging.

    Args:
        environment: Environment name
        log_level: Log level
        log_format: "json" or "text"
        log_dir: Optional directory for rotating log files

    Returns:
        LoggerConfig: Active configuration
    """
    global _logger_config
    _logger_config = LoggerConfig(environment, log_level, log_format, log_dir)
    return _logger_config


def get_logger(name: str = __name__) -> logging.Logger:
    """Get a logger. Never configures logging."""
    return logging.getLogger(name)


def get_component_logger(component: str) -> logging.Logger:
    """Get an engine component logger.

    Args:
        component: scoring, matching, combination or configuration

    Returns:
        logging.Logger: Component logger

    Raises:
        ValueError: If component is not recognized
    """
    if component not in COMPONENTS:
        raise ValueError(f"Unknown component: {component}. Available: {list(COMPONENTS)}")
    return get_logger(COMPONENTS[component])


def get_scoring_logger() -> logging.Logger:
    """Logger for flag aggregation and section scoring."""
    return get_component_logger("scoring")


def get_matching_logger() -> logging.Logger:
    """Logger for range parsing and result matching."""
    return get_component_logger("matching")


def get_combination_logger() -> logging.Logger:
    """Logger for component combination."""
    return get_component_logger("combination")


def get_configuration_logger() -> logging.Logger:
    """Logger for scoring configuration loading."""
    return get_component_logger("configuration")


class PerformanceLogger:
    """Context manager that times an engine operation.

    Example:
        with PerformanceLogger("score_attempt", logger, extra={"test_id": "7"}):
            ...
    """

    def __init__(self, operation: str, logger: Optional[logging.Logger] = None, extra: Optional[Dict[str, Any]] = None):
        self.operation = operation
        self.logger = logger or get_logger(ROOT_LOGGER)
        self.extra = extra or {}
        self.duration_ms: Optional[float] = None
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._started is None:
            return

        self.duration_ms = (time.perf_counter() - self._started) * 1000
        level = logging.WARNING if self.duration_ms > SLOW_OPERATION_MS else logging.DEBUG

        self.logger.log(level, f"Completed {self.operation} in {self.duration_ms:.1f}ms", extra={
            "operation": self.operation,
            "duration_ms": round(self.duration_ms, 3),
            "success": exc_type is None,
            **self.extra,
        })
