"""
Error handling system for style-versioning.

Provides the exception hierarchy, structured error contexts, error callbacks,
and consistent error management for the semver engine, the registry and the
fixture harness.
"""

import logging
import traceback
from dataclasses import dataclass, field
from enum import Enum
from itertools import chain
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from .structured_logging import CurrentStderrHandler

if TYPE_CHECKING:
    from .registry import Conflict


class StyleVersioningError(Exception):
    """Base class for every error raised by style-versioning."""


class InvalidVersionError(StyleVersioningError, ValueError):
    """A version string did not parse as MAJOR.MINOR.PATCH[-PRERELEASE]."""

    def __init__(self, version: Any):
        self.version = version
        super().__init__(f"The version '{version}' is not a valid semver version.")


class InvalidComparatorError(StyleVersioningError, ValueError):
    """An unknown comparator token was passed to cmp()."""

    def __init__(self, comparator: str):
        self.comparator = comparator
        super().__init__(
            f"The comparator '{comparator}' is not supported. "
            "Use one of: ==, !=, >, >=, <, <=, ===, !=="
        )


class RegistrationError(StyleVersioningError, ValueError):
    """A module declaration was rejected at registration time."""


class ManifestError(StyleVersioningError, ValueError):
    """A declaration manifest could not be read into module declarations."""


class DependencyConflictError(StyleVersioningError):
    """The check pass found a missing or incompatible dependency."""

    def __init__(self, conflict: "Conflict"):
        self.conflict = conflict
        super().__init__(conflict.message)


class ErrorLevel(Enum):
    """Severity of a recorded error, valued by its logging level."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class ErrorCategory(Enum):
    """Which stage of a build an error came from."""

    REGISTRATION = "REGISTRATION"
    RESOLUTION = "RESOLUTION"
    PARSING = "PARSING"
    CONFIGURATION = "CONFIGURATION"
    FILESYSTEM = "FILESYSTEM"


@dataclass
class ErrorContext:
    """Everything known about one recorded error."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None
    suggestions: List[str] = field(default_factory=list)

    @property
    def stat_key(self) -> str:
        return f"{self.category.value}_{self.level.name}"

    @property
    def exception_summary(self) -> Optional[str]:
        """The exception formatted as its final traceback line."""
        if self.exception is None:
            return None
        return "".join(
            traceback.format_exception_only(type(self.exception), self.exception)
        ).strip()

    def summary(self) -> str:
        """One log line: the message followed by where it came from."""
        where = {
            "category": self.category.value,
            "at": f"{self.module}.{self.function}",
        }
        if self.details:
            where["details"] = self.details
        if self.exception is not None:
            where["exception"] = type(self.exception).__name__
        if self.suggestions:
            where["suggestions"] = self.suggestions
        return f"{self.message} | {where}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.name,
            "category": self.category.value,
            "message": self.message,
            "module": self.module,
            "function": self.function,
            "details": self.details,
            "exception_type": type(self.exception).__name__ if self.exception else None,
            "exception_message": str(self.exception) if self.exception else None,
            "traceback": self.exception_summary,
            "suggestions": self.suggestions,
        }


ErrorCallback = Callable[[ErrorContext], None]


def _context_logger(name: str, level: int) -> logging.Logger:
    """Return the plain-text error logger, attaching its stderr handler once."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    if not logger.handlers:
        handler = CurrentStderrHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(handler)
    return logger


class ErrorHandler:
    """
    Records errors before they propagate.

    Every error is logged, counted per category and level, and passed to the
    callbacks registered for its category and then to the global callbacks.
    Embedding tools use the callbacks to observe registration, resolution and
    parsing failures without wrapping every call.
    """

    def __init__(
        self,
        logger_name: str = "style_versioning.errors",
        log_level: int = logging.WARNING,
        enable_callbacks: bool = True,
    ):
        self.logger = _context_logger(logger_name, log_level)
        self.enable_callbacks = enable_callbacks
        self.category_callbacks: Dict[ErrorCategory, List[ErrorCallback]] = {}
        self.global_callbacks: List[ErrorCallback] = []
        self.stats: Dict[str, int] = {}

    def register_callback(
        self, callback: ErrorCallback, category: Optional[ErrorCategory] = None
    ) -> None:
        """
        Call ``callback`` for every recorded error, or only for one category.

        Ignored when callbacks are disabled.
        """
        if not self.enable_callbacks:
            return
        if category is None:
            self.global_callbacks.append(callback)
        else:
            self.category_callbacks.setdefault(category, []).append(callback)

    def unregister_callback(self, callback: ErrorCallback) -> None:
        """Remove a callback from every category it was registered for."""
        for callbacks in chain([self.global_callbacks], self.category_callbacks.values()):
            while callback in callbacks:
                callbacks.remove(callback)

    def handle_error(
        self,
        level: ErrorLevel,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        exception: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ) -> ErrorContext:
        """
        Record one error.

        Args:
            level: Severity
            category: Build stage the error came from
            message: Diagnostic text
            module: Module reporting the error
            function: Function reporting the error
            exception: The exception about to be raised, if any
            details: Extra structured data
            suggestions: Hints for fixing the input

        Returns:
            ErrorContext: The recorded context
        """
        context = ErrorContext(
            level=level,
            category=category,
            message=message,
            module=module,
            function=function,
            details=details or {},
            exception=exception,
            suggestions=suggestions or [],
        )

        self.stats[context.stat_key] = self.stats.get(context.stat_key, 0) + 1
        self.logger.log(level.value, context.summary())

        if self.enable_callbacks:
            self._notify(context)

        return context

    def _notify(self, context: ErrorContext) -> None:
        callbacks = chain(
            self.category_callbacks.get(context.category, []), self.global_callbacks
        )
        for callback in list(callbacks):
            try:
                callback(context)
            except Exception as cb_error:
                # A broken observer must not replace the original error
                self.logger.error(f"Error callback {callback!r} failed: {cb_error}")

    def warning(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        return self.handle_error(
            ErrorLevel.WARNING, category, message, module, function, **kwargs
        )

    def error(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        return self.handle_error(
            ErrorLevel.ERROR, category, message, module, function, **kwargs
        )

    def get_error_stats(self) -> Dict[str, int]:
        """Counts of recorded errors keyed by ``CATEGORY_LEVEL``."""
        return dict(self.stats)

    def reset_stats(self) -> None:
        self.stats.clear()


_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Return the process-wide error handler, creating it on first use."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def setup_error_handling(
    log_level: int = logging.WARNING,
    enable_callbacks: bool = True,
    logger_name: str = "style_versioning.errors",
) -> ErrorHandler:
    """
    Replace the process-wide error handler.

    Registries created afterwards record their errors with the new handler.
    """
    global _global_error_handler
    _global_error_handler = ErrorHandler(logger_name, log_level, enable_callbacks)
    return _global_error_handler


def log_parsing_error(
    message: str,
    module: str,
    function: str,
    file_path: Optional[str] = None,
    exception: Optional[Exception] = None,
) -> ErrorContext:
    """Record a manifest that could not be decoded."""
    return get_error_handler().error(
        ErrorCategory.PARSING,
        message,
        module,
        function,
        details={"file_path": file_path} if file_path is not None else {},
        exception=exception,
        suggestions=[
            "Check the manifest format and encoding",
            "Every module entry needs a name and a version",
        ],
    )
