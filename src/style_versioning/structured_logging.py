"""
Structured logging configuration for style-versioning.

Provides consistent, machine-readable logging for module registration,
dependency checks and fixture runs. Each event is one JSON object per line on
stderr carrying an ``event_type``, the current build context and the event's
own fields.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Attributes every LogRecord has; anything else on a record came from ``extra``.
_STANDARD_RECORD_KEYS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

_PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class CurrentStderrHandler(logging.StreamHandler):
    """Stream handler bound to whatever sys.stderr is at emit time."""

    def __init__(self):
        logging.Handler.__init__(self)

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


class StructuredFormatter(logging.Formatter):
    """Render a record and its ``extra`` fields as one JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_KEYS
        )
        return json.dumps(entry, default=str)


class EngineLogger:
    """
    Event logger for one engine component.

    Loggers live under ``style_versioning.<component>``, do not propagate to
    the root logger and stay at WARNING until ``configure_logging`` says
    otherwise.
    """

    def __init__(self, component: str):
        self.logger = logging.getLogger(f"style_versioning.{component}")
        self.logger.propagate = False
        if not self.logger.handlers:
            handler = CurrentStderrHandler()
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.WARNING)
        self.build_context: Dict[str, Any] = {}

    def set_build_context(
        self, build_id: Optional[str] = None, source: Optional[str] = None
    ) -> None:
        """Attach a build id and source to every following event."""
        self.build_context = {
            key: value
            for key, value in (("build_id", build_id), ("source", source))
            if value
        }

    def clear_build_context(self) -> None:
        self.build_context.clear()

    def event(self, level: int, event_type: str, **fields) -> None:
        if self.logger.isEnabledFor(level):
            self.logger.log(
                level,
                event_type,
                extra={"event_type": event_type, **self.build_context, **fields},
            )

    def debug(self, event_type: str, **fields) -> None:
        self.event(logging.DEBUG, event_type, **fields)

    def info(self, event_type: str, **fields) -> None:
        self.event(logging.INFO, event_type, **fields)

    def warning(self, event_type: str, **fields) -> None:
        self.event(logging.WARNING, event_type, **fields)

    def error(self, event_type: str, **fields) -> None:
        self.event(logging.ERROR, event_type, **fields)


_registry_logger = EngineLogger("registry")
_checker_logger = EngineLogger("checker")
_fixture_logger = EngineLogger("fixtures")

_ALL_LOGGERS = (_registry_logger, _checker_logger, _fixture_logger)


def get_registry_logger() -> EngineLogger:
    return _registry_logger


def get_checker_logger() -> EngineLogger:
    return _checker_logger


def get_fixture_logger() -> EngineLogger:
    return _fixture_logger


def log_module_registered(name: str, version: str, dependency_count: int) -> None:
    _registry_logger.debug(
        "module_registered",
        module_name=name,
        module_version=version,
        dependency_count=dependency_count,
    )


def log_dependency_edges_removed(target: str, removed: int) -> None:
    _registry_logger.info(
        "dependency_edges_removed", target_module=target, removed_edges=removed
    )


def log_check_started(module_count: int, edge_count: int) -> None:
    _checker_logger.debug(
        "check_started", module_count=module_count, edge_count=edge_count
    )


def log_check_passed(module_count: int, edge_count: int) -> None:
    _checker_logger.info(
        "check_passed", module_count=module_count, edge_count=edge_count
    )


def log_dependency_conflict(kind: str, module_name: str, dependency_name: str) -> None:
    """Log the conflict that ended a check pass."""
    _checker_logger.warning(
        "dependency_conflict",
        conflict_kind=kind,
        module_name=module_name,
        dependency_name=dependency_name,
    )


def log_fixture_result(path: str, passed: bool) -> None:
    """Passing fixtures log at debug, failing ones at warning."""
    if passed:
        _fixture_logger.debug("fixture_passed", fixture=path)
    else:
        _fixture_logger.warning("fixture_failed", fixture=path)


def set_build_context(build_id: Optional[str] = None, source: Optional[str] = None) -> None:
    """Set the build context on every component logger."""
    for logger in _ALL_LOGGERS:
        logger.set_build_context(build_id, source)


def clear_build_context() -> None:
    for logger in _ALL_LOGGERS:
        logger.clear_build_context()


def configure_logging(log_level: str = "WARNING", enable_json: bool = True) -> None:
    """
    Set the level and output format of every component logger.

    Args:
        log_level: Level name, e.g. ``"INFO"``; unknown names mean WARNING
        enable_json: JSON lines when true, plain text otherwise
    """
    level = getattr(logging, str(log_level).upper(), logging.WARNING)
    formatter = StructuredFormatter() if enable_json else logging.Formatter(_PLAIN_FORMAT)

    for component in _ALL_LOGGERS:
        component.logger.setLevel(level)
        for handler in component.logger.handlers:
            handler.setFormatter(formatter)
