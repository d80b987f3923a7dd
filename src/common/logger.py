"""
Logging for scout runs.

Every record written through a ``ScoutLogger`` carries the run id and the
pipeline layer ("scout", "discovery", "scoring") as record attributes.
``setup_logging`` installs a formatter that renders them either as a
``[run:<8 chars>] [layer]`` prefix or as fields of a JSON line, so one run
can be followed across modules and filtered in a log aggregator.
"""

import json
import logging
import os
import sys
from typing import Any, Dict, MutableMapping, Optional, Tuple


# Global debug mode flag - can be set via environment or the CLI --debug flag
_GLOBAL_DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"

# Record attributes added by ScoutLogger
CONTEXT_FIELDS = ("run_id", "layer")


def set_global_debug_mode(enabled: bool) -> None:
    global _GLOBAL_DEBUG_MODE
    _GLOBAL_DEBUG_MODE = enabled


def is_debug_mode() -> bool:
    return _GLOBAL_DEBUG_MODE


class ScoutLogger(logging.LoggerAdapter):
    """
    Logger adapter that stamps records with the scout run context.

    Usage:
        log = get_logger(__name__, run_id=run_id, layer="scout")
        log.info("Scout run started")
        log.bind("scoring").debug("Scored 4 connector paths")
    """

    def __init__(
        self,
        name: str,
        run_id: Optional[str] = None,
        layer: Optional[str] = None,
        debug_mode: Optional[bool] = None,
    ):
        super().__init__(logging.getLogger(name), {"run_id": run_id, "layer": layer})
        self._debug_mode = debug_mode if debug_mode is not None else is_debug_mode()
        if self._debug_mode:
            self.logger.setLevel(logging.DEBUG)

    @property
    def run_id(self) -> Optional[str]:
        return self.extra["run_id"]

    @property
    def layer(self) -> Optional[str]:
        return self.extra["layer"]

    def bind(self, layer: str) -> "ScoutLogger":
        """Same run, another layer."""
        return ScoutLogger(self.logger.name, self.run_id, layer, self._debug_mode)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def _context_prefix(record: logging.LogRecord) -> str:
    parts = []
    run_id = getattr(record, "run_id", None)
    layer = getattr(record, "layer", None)
    if run_id:
        parts.append(f"[run:{run_id[:8]}]")
    if layer:
        parts.append(f"[{layer}]")
    return f"{' '.join(parts)} " if parts else ""


class ScoutTextFormatter(logging.Formatter):
    """Plain text lines with the run context in front of the message."""

    def __init__(self):
        super().__init__(
            "%(asctime)s [%(levelname)s] %(name)s: %(scout_context)s%(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        record.scout_context = _context_prefix(record)
        return super().format(record)


class ScoutJsonFormatter(logging.Formatter):
    """One JSON object per line; run_id and layer are separate fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Configure the root logger to write to stdout.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: "simple" text lines or "json" lines
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(ScoutJsonFormatter() if format == "json" else ScoutTextFormatter())

    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(
    name: str,
    run_id: Optional[str] = None,
    layer: Optional[str] = None,
    debug_mode: Optional[bool] = None,
) -> ScoutLogger:
    return ScoutLogger(name, run_id, layer, debug_mode)
