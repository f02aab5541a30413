"""
Structured JSON logging for the automation service.

Provides:
- JSON (or plain text) output on the root logger
- Request context integration (request_id, method, path, actor)
- Keyword context fields on every log call
- Helpers for workflow execution events

Set MASTERY_LOG_JSON=false for plain text logs in local development.
"""

import json
import logging
import os
import time
from datetime import datetime, timezone

from flask import Flask, has_request_context

from mastery.services.request_context import get_request_context, get_request_id


class StructuredFormatter(logging.Formatter):
    """Formats log records as one JSON object per line."""

    def __init__(self, json_enabled: bool = True):
        super().__init__('%(asctime)s %(levelname)s %(name)s: %(message)s')
        self.json_enabled = json_enabled

    def format(self, record: logging.LogRecord) -> str:
        if not self.json_enabled:
            return super().format(record)

        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if has_request_context():
            log_entry.update(get_request_context())

        if hasattr(record, 'extra_fields'):
            log_entry.update(record.extra_fields)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class StructuredLogger:
    """Logger accepting keyword context fields: ``logger.info("msg", workflow_id=...)``."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log_with_context(self, level: int, message: str, exc_info=False, **kwargs):
        extra_fields = kwargs.copy()
        if 'request_id' not in extra_fields and has_request_context():
            extra_fields['request_id'] = get_request_id()
        self.logger.log(level, message, exc_info=exc_info, extra={'extra_fields': extra_fields})

    def debug(self, message: str, **kwargs):
        self._log_with_context(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log_with_context(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log_with_context(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log_with_context(logging.ERROR, message, **kwargs)

    def exception(self, message: str, **kwargs):
        self._log_with_context(logging.ERROR, message, exc_info=True, **kwargs)

    def log_workflow_event(self, event: str, workflow_id: str, execution_id: str = None, **kwargs):
        """Log a workflow lifecycle event (started, suspended, completed, failed)."""
        level = logging.WARNING if event.endswith('failed') else logging.INFO
        self._log_with_context(
            level,
            f"Workflow {event}",
            event_type='workflow',
            workflow_event=event,
            workflow_id=workflow_id,
            execution_id=execution_id,
            **kwargs
        )

    def log_action_event(self, action: str, index: int, success: bool, **kwargs):
        """Log the outcome of one workflow action."""
        level = logging.INFO if success else logging.WARNING
        self._log_with_context(
            level,
            f"Action {index + 1} ({action}) {'completed' if success else 'failed'}",
            event_type='workflow_action',
            action=action,
            action_index=index,
            success=success,
            **kwargs
        )

    def log_request_start(self, method: str, path: str, **kwargs):
        self.info(f"Request started: {method} {path}", event_type='request_start',
                  method=method, path=path, **kwargs)

    def log_request_end(self, method: str, path: str, status_code: int, duration_ms: float, **kwargs):
        self.info(
            f"Request completed: {method} {path} - {status_code} ({duration_ms}ms)",
            event_type='request_end',
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
            **kwargs
        )


def get_logger(name: str) -> StructuredLogger:
    """Get structured logger instance."""
    return StructuredLogger(name)


def configure_logging(app: Flask):
    """Install the structured formatter on the root logger."""
    json_enabled = app.config.get(
        'MASTERY_LOG_JSON',
        os.environ.get('MASTERY_LOG_JSON', 'true').lower() == 'true')
    log_level = str(app.config.get('LOG_LEVEL', os.environ.get('LOG_LEVEL', 'INFO'))).upper()
    level = getattr(logging, log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(StructuredFormatter(json_enabled=json_enabled))
    root_logger.addHandler(console_handler)

    app.logger.setLevel(level)

    get_logger('mastery.config').info(
        "Logging configured",
        json_enabled=json_enabled,
        log_level=log_level,
    )


class LoggingMiddleware:
    """Logs the start and end of every request except health and metrics probes."""

    QUIET_PATHS = ('/health', '/metrics')

    def __init__(self, app: Flask):
        self.app = app
        self.logger = get_logger('mastery.requests')
        app.before_request(self._before_request)
        app.after_request(self._after_request)

    def _before_request(self):
        from flask import request

        if request.path in self.QUIET_PATHS:
            return
        self.logger.log_request_start(
            method=request.method,
            path=request.path,
            content_length=request.content_length,
        )

    def _after_request(self, response):
        from flask import g, request

        if request.path in self.QUIET_PATHS:
            return response

        duration_ms = 0
        if hasattr(g, 'request_start_time'):
            duration_ms = round((time.time() - g.request_start_time) * 1000, 2)

        self.logger.log_request_end(
            method=request.method,
            path=request.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        return response


def init_logging(app: Flask):
    """Initialize structured logging for Flask application."""
    configure_logging(app)
    LoggingMiddleware(app)
    get_logger('mastery.startup').info(
        "Application starting",
        debug=app.debug,
        testing=app.testing,
    )
