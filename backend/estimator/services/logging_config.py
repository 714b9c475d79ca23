"""Structured logging configuration for the steel estimator."""
import logging
import json
import sys
from datetime import datetime, timezone


class JSONFormatter(logging.Formatter):
    """JSON structured log formatter for production."""
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "run_id"):
            log_entry["run_id"] = record.run_id
        if hasattr(record, "pass_name"):
            log_entry["pass_name"] = record.pass_name
        if hasattr(record, "duration_ms"):
            log_entry["duration_ms"] = record.duration_ms
        return json.dumps(log_entry)


def setup_logging(level: str = "INFO", json_output: bool = True):
    """Configure application logging."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
        ))

    root.handlers = [handler]

    # Suppress noisy loggers
    for name in ["httpcore", "httpx", "LiteLLM", "pdfminer"]:
        logging.getLogger(name).setLevel(logging.WARNING)


class RunLogAdapter(logging.LoggerAdapter):
    """
    Attaches the estimation run id (and optionally the active pass) to every
    record so JSONFormatter can emit them as top-level fields.

        log = RunLogAdapter(logger, run_id="r-42", pass_name="QuantityTakeoffNode")
        log.info("takeoff complete")
    """

    def __init__(self, logger: logging.Logger, run_id: str, pass_name: str = ""):
        extra = {"run_id": run_id}
        if pass_name:
            extra["pass_name"] = pass_name
        super().__init__(logger, extra)

    def process(self, msg, kwargs):
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return f"[{self.extra['run_id']}] {msg}", kwargs
