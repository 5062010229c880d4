"""
Structured logging utilities for the agriforecast core

structlog-based logging with service context, call-site information and
JSON / text / colored renderers.
"""

import logging
import os
import sys
import time
import functools
from typing import Optional, Dict, Any, Union
from pathlib import Path
from enum import Enum

import structlog
from structlog.types import Processor


class LogLevel(str, Enum):
    """Logging levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats"""
    JSON = "json"
    TEXT = "text"
    COLORED = "colored"


_logging_configured = False
_log_level = LogLevel.INFO
_log_format = LogFormat.JSON


def configure_logging(
    level: LogLevel = LogLevel.INFO,
    format_type: LogFormat = LogFormat.JSON,
    log_file: Optional[Union[str, Path]] = None,
    service_name: str = "agriforecast",
    service_version: str = "1.0.0",
    environment: str = "development",
    force: bool = False
) -> None:
    """
    Configure structured logging for the whole application

    Args:
        level: Logging level
        format_type: Output format
        log_file: Optional path of a JSON log file
        service_name: Service name added to every event
        service_version: Service version added to every event
        environment: Runtime environment
        force: Reconfigure even if logging was already configured
    """
    global _logging_configured, _log_level, _log_format

    if _logging_configured and not force:
        return

    level = LogLevel(level)
    format_type = LogFormat(format_type)
    _log_level = level
    _log_format = format_type

    processors = [
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
        structlog.processors.format_exc_info,
        _add_service_context(service_name, service_version, environment),
    ]

    if format_type == LogFormat.JSON:
        processors.append(structlog.processors.JSONRenderer())
    elif format_type == LogFormat.COLORED:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:  # TEXT
        processors.append(
            structlog.processors.KeyValueRenderer(
                key_order=['timestamp', 'level', 'logger', 'event']
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.value)
    )
    logging.getLogger().setLevel(getattr(logging, level.value))

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(getattr(logging, level.value))
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        logging.getLogger().addHandler(file_handler)

    _logging_configured = True


def _add_service_context(
    service_name: str,
    service_version: str,
    environment: str
) -> Processor:
    """
    Build a processor that stamps service metadata on every event

    Args:
        service_name: Service name
        service_version: Service version
        environment: Runtime environment

    Returns:
        structlog processor
    """
    def processor(logger, method_name, event_dict):
        event_dict.update({
            'service': service_name,
            'version': service_version,
            'environment': environment,
            'pid': os.getpid(),
        })
        return event_dict

    return processor


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured structured logger

    Args:
        name: Logger name (defaults to the caller's module name)

    Returns:
        Structured logger
    """
    if not _logging_configured:
        configure_logging()

    if name is None:
        import inspect
        frame = inspect.currentframe().f_back
        name = frame.f_globals.get('__name__', 'unknown')

    return structlog.get_logger(name)


def get_model_logger(
    domain: str,
    predictor: str,
    operation: Optional[str] = None
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger bound to a model context

    Args:
        domain: Forecasting domain (weather, soil, energy, ...)
        predictor: Predictor name
        operation: Current operation (train, predict, evaluate)

    Returns:
        Logger with bound model context
    """
    logger = get_logger("model")

    context = {
        'domain': domain,
        'predictor': predictor
    }
    if operation:
        context['operation'] = operation

    return logger.bind(**context)


def log_performance_metrics(
    logger: structlog.stdlib.BoundLogger,
    operation: str,
    duration_seconds: float,
    success: bool = True,
    additional_metrics: Optional[Dict[str, Any]] = None
):
    """
    Log performance metrics of an operation

    Args:
        logger: Target logger
        operation: Operation name
        duration_seconds: Duration in seconds
        success: Whether the operation succeeded
        additional_metrics: Extra fields
    """
    metrics = {
        'operation': operation,
        'duration_seconds': round(duration_seconds, 4),
        'success': success,
        'performance_log': True
    }

    if additional_metrics:
        metrics.update(additional_metrics)

    if success:
        logger.info(f"Performance: {operation} completed", **metrics)
    else:
        logger.error(f"Performance: {operation} failed", **metrics)


def log_model_training(
    logger: structlog.stdlib.BoundLogger,
    predictor: str,
    training_duration: float,
    samples_count: int,
    model_params: Dict[str, Any]
):
    """
    Log the completion of a training run

    Args:
        logger: Target logger
        predictor: Predictor name
        training_duration: Duration in seconds
        samples_count: Number of samples consumed
        model_params: Summary of the trained parameters
    """
    logger.info(
        "Model training completed",
        predictor=predictor,
        training_duration_seconds=round(training_duration, 4),
        training_samples=samples_count,
        model_parameters=model_params,
        training_log=True
    )


class LoggerMixin:
    """
    Mixin adding a lazily-bound class logger

    The logger name is ``<module>.<class>`` and carries any context set via
    ``set_log_context``.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._logger = None
        self._log_context: Dict[str, Any] = {}

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        if self._logger is None:
            class_name = self.__class__.__name__
            logger_name = f"{self.__class__.__module__}.{class_name}"
            self._logger = get_logger(logger_name).bind(
                **{'class': class_name, **self._log_context}
            )
        return self._logger

    def set_log_context(self, **kwargs):
        """Add context fields to every subsequent log event"""
        self._log_context.update(kwargs)
        self._logger = None

    def log_operation_start(self, operation: str, **kwargs):
        self.logger.info(f"Starting {operation}", operation=operation, **kwargs)

    def log_operation_end(self, operation: str, success: bool = True, **kwargs):
        if success:
            self.logger.info(f"Completed {operation}", operation=operation, success=success, **kwargs)
        else:
            self.logger.error(f"Failed {operation}", operation=operation, success=success, **kwargs)


def timed_operation(operation_name: Optional[str] = None):
    """
    Decorator measuring and logging the execution time of an operation

    Args:
        operation_name: Operation name (defaults to the function name)
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(func.__module__)
            op_name = operation_name or func.__name__

            start_time = time.perf_counter()
            logger.debug(f"Starting timed operation: {op_name}")

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                log_performance_metrics(
                    logger=logger,
                    operation=op_name,
                    duration_seconds=time.perf_counter() - start_time,
                    success=False,
                    additional_metrics={'error': str(e)}
                )
                raise

            log_performance_metrics(
                logger=logger,
                operation=op_name,
                duration_seconds=time.perf_counter() - start_time,
                success=True
            )
            return result

        return wrapper
    return decorator


def configure_logging_from_config(config, force: bool = False) -> None:
    """
    Configure logging from a ``ForecastConfig``

    Args:
        config: Root configuration (uses its ``monitoring`` section)
        force: Reconfigure even if logging was already configured
    """
    monitoring = config.monitoring
    configure_logging(
        level=monitoring.log_level,
        format_type=monitoring.log_format,
        log_file=monitoring.log_file,
        service_name=config.service_name,
        service_version=config.version,
        environment=config.environment,
        force=force
    )
