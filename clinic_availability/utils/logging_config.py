"""
Engine logging setup.

The engine logs under the ``clinic_availability`` namespace. Its level comes
from ``AvailabilityConfig.log_level`` (env ``AVAILABILITY_LOG_LEVEL``) and is
applied even when the host process already owns the root handlers; a stdout
handler is only installed when nobody else has configured logging.

In containers the runtime stamps each line, so no timestamp is added there.
"""
import os
import sys
import logging
from typing import Union

ENGINE_LOGGER = "clinic_availability"

IS_CONTAINERIZED = bool(
    os.environ.get('FLY_APP_NAME') or
    os.environ.get('KUBERNETES_SERVICE_HOST') or
    os.path.exists('/.dockerenv')
)

ENGINE_FORMAT = "[%(name)s] %(levelname)s: %(message)s"
ENGINE_FORMAT_WITH_TIME = "[%(asctime)s] " + ENGINE_FORMAT
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# supabase-py talks to PostgREST over httpx
NOISY_LOGGERS = ('httpx', 'httpcore', 'hpack', 'postgrest')


def resolve_level(level: Union[int, str]) -> int:
    """Accept a logging constant or its name ('debug', 'INFO', ...)."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def configure_logging(level: Union[int, str] = logging.INFO, force: bool = False) -> logging.Logger:
    """
    Apply the engine log level and make sure its records reach stdout.

    Args:
        level: Level for the engine namespace, as int or name
        force: Replace root handlers that are already installed

    Returns:
        The engine's package logger
    """
    level = resolve_level(level)

    engine_logger = logging.getLogger(ENGINE_LOGGER)
    engine_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger = logging.getLogger()
    if root_logger.handlers and not force:
        return engine_logger

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if IS_CONTAINERIZED:
        handler.setFormatter(logging.Formatter(ENGINE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(ENGINE_FORMAT_WITH_TIME, datefmt=DATE_FORMAT))
    root_logger.addHandler(handler)

    if root_logger.level > level:
        root_logger.setLevel(level)

    return engine_logger
