"""
Advanced Logging Module

Provides structured logging for clustering runs with:
- structlog configuration (JSON or console rendering)
- Performance timing (duration, throughput)
- Progress logging for long merge/refinement loops
- CPU/memory snapshots
"""

import contextlib
import functools
import logging
import logging.handlers
import time
from pathlib import Path
from typing import Any, Callable, Optional

import psutil
import structlog
from structlog.types import EventDict, Processor


# =============================================================================
# Structured Logging Configuration
# =============================================================================


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    service_name: str = "gridcluster",
) -> None:
    """
    Configure structured logging with structlog.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ("json" or "console")
        log_file: Optional log file path
        service_name: Service name for log context
    """
    level = getattr(logging, log_level.upper())

    # Configure stdlib logging
    logging.basicConfig(format="%(message)s", level=level)
    logging.root.setLevel(level)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=100 * 1024 * 1024,  # 100MB
            backupCount=5,
        )
        file_handler.setLevel(level)
        logging.root.addHandler(file_handler)

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_context(service_name),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_service_context(service_name: str) -> Processor:
    """
    Add service-level context to all log events.

    Args:
        service_name: Service name

    Returns:
        Processor function
    """

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["service"] = service_name
        return event_dict

    return processor


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structlog logger bound to the given name."""
    return structlog.get_logger(name)


# =============================================================================
# Performance Logger
# =============================================================================


class PerformanceLogger:
    """
    Context manager for automatic performance timing and logging.

    Tracks execution time and optional throughput metrics.
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[structlog.BoundLogger] = None,
        log_level: str = "info",
        item_count: Optional[int] = None,
        **extra_context: Any,
    ):
        """
        Initialize performance logger.

        Args:
            operation: Operation name for logging
            logger: Logger instance (creates new if None)
            log_level: Log level for output
            item_count: Number of items processed (for throughput)
            **extra_context: Additional context fields
        """
        self.operation = operation
        self.logger = logger or get_logger(__name__)
        self.log_level = log_level
        self.item_count = item_count
        self.extra_context = extra_context
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self.start_time = time.time()
        self.logger.debug(
            "operation_started",
            operation=self.operation,
            **self.extra_context,
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.end_time = time.time()
        duration = self.end_time - self.start_time

        log_data = {
            "operation": self.operation,
            "duration_seconds": round(duration, 3),
            **self.extra_context,
        }

        if self.item_count is not None and self.item_count > 0 and duration > 0:
            log_data["item_count"] = self.item_count
            log_data["items_per_second"] = round(self.item_count / duration, 2)

        if exc_type is not None:
            log_data["error"] = str(exc_val)
            log_data["error_type"] = exc_type.__name__
            self.logger.error("operation_failed", **log_data)
        else:
            getattr(self.logger, self.log_level)("operation_completed", **log_data)

    @property
    def elapsed_time(self) -> float:
        """Get elapsed time (even if context not exited)."""
        if self.start_time is None:
            return 0.0
        end = self.end_time or time.time()
        return end - self.start_time


def timed(
    operation: Optional[str] = None,
    log_level: str = "info",
) -> Callable:
    """
    Decorator for automatic timing of functions.

    Example:
        @timed(operation="build_index")
        def build(points):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            op_name = operation or func.__name__
            with PerformanceLogger(op_name, log_level=log_level):
                return func(*args, **kwargs)

        return wrapper

    return decorator


# =============================================================================
# Batch Progress Logger
# =============================================================================


class BatchLogger:
    """
    Logger for long loops with progress tracking.

    Only logs every N items while tracking overall progress and throughput.
    """

    def __init__(
        self,
        total_items: int,
        operation: str,
        log_interval: int = 100,
        logger: Optional[structlog.BoundLogger] = None,
    ):
        """
        Initialize batch logger.

        Args:
            total_items: Total number of items to process
            operation: Operation name
            log_interval: Log progress every N items
            logger: Logger instance
        """
        self.total_items = total_items
        self.operation = operation
        self.log_interval = max(1, log_interval)
        self.logger = logger or get_logger(__name__)

        self.processed_items = 0
        self.start_time = time.time()
        self.last_log_count = 0

    def update(self, count: int = 1) -> None:
        """Advance progress by count items."""
        self.processed_items += count

        if (
            self.processed_items - self.last_log_count >= self.log_interval
            or self.processed_items >= self.total_items
        ):
            self._log_progress()
            self.last_log_count = self.processed_items

    def _log_progress(self) -> None:
        elapsed = time.time() - self.start_time
        progress_pct = (self.processed_items / self.total_items) * 100 if self.total_items > 0 else 0
        items_per_sec = self.processed_items / elapsed if elapsed > 0 else 0

        if items_per_sec > 0:
            eta_seconds = (self.total_items - self.processed_items) / items_per_sec
        else:
            eta_seconds = 0

        self.logger.debug(
            "batch_progress",
            operation=self.operation,
            processed=self.processed_items,
            total=self.total_items,
            progress_pct=round(progress_pct, 1),
            items_per_second=round(items_per_sec, 2),
            elapsed_seconds=round(elapsed, 1),
            eta_seconds=round(eta_seconds, 1),
        )

    def complete(self) -> None:
        """Log completion statistics."""
        elapsed = time.time() - self.start_time
        items_per_sec = self.processed_items / elapsed if elapsed > 0 else 0

        self.logger.info(
            "batch_completed",
            operation=self.operation,
            total_items=self.processed_items,
            duration_seconds=round(elapsed, 3),
            items_per_second=round(items_per_sec, 2),
        )


# =============================================================================
# Metrics Logger
# =============================================================================


class MetricsLogger:
    """
    Logger for process CPU and memory usage.

    The hierarchical distance cache is quadratic in n, so a snapshot after a
    run is the quickest way to see what a clustering actually cost.
    """

    def __init__(self, logger: Optional[structlog.BoundLogger] = None):
        self.logger = logger or get_logger(__name__)
        self.process = psutil.Process()

    def log_cpu_memory(self, context: Optional[str] = None) -> dict[str, Any]:
        """
        Log CPU and memory metrics.

        Args:
            context: Optional context label

        Returns:
            Metrics dictionary
        """
        metrics = {
            "cpu_percent": self.process.cpu_percent(),
            "memory_mb": self.process.memory_info().rss / (1024 * 1024),
            "memory_percent": self.process.memory_percent(),
        }

        if context:
            metrics["context"] = context

        self.logger.info("cpu_memory_metrics", **metrics)
        return metrics


# =============================================================================
# Utility Functions
# =============================================================================


@contextlib.contextmanager
def log_exceptions(
    logger: Optional[structlog.BoundLogger] = None,
    operation: Optional[str] = None,
    reraise: bool = True,
):
    """
    Context manager to automatically log exceptions.

    Example:
        with log_exceptions(operation="load_points"):
            points = load_points(path)
    """
    log = logger or get_logger(__name__)
    try:
        yield
    except Exception as e:
        log_data = {
            "error": str(e),
            "error_type": type(e).__name__,
        }
        if operation:
            log_data["operation"] = operation

        log.error("exception_caught", **log_data, exc_info=True)

        if reraise:
            raise
