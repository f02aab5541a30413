# mastery/services/queue.py
from __future__ import annotations
import os
from typing import Any, Optional

import redis
from flask import current_app, has_app_context
from rq import Queue

# Queue name MUST match the worker start command.
QUEUE_NAME = "workflows"

_queue: Optional[Queue] = None


def _redis_url() -> str:
    if has_app_context():
        return current_app.config.get("REDIS_URL") or "redis://localhost:6379/0"
    return os.getenv("REDIS_URL", "redis://localhost:6379/0")


def get_queue() -> Queue:
    """Workflow queue, connected on first use so web processes without Redis still boot."""
    global _queue
    if _queue is None:
        # decode_responses=False keeps RQ binary-safe for pickled jobs.
        connection = redis.from_url(_redis_url(), decode_responses=False)
        _queue = Queue(QUEUE_NAME, connection=connection)
    return _queue


def enqueue(func: Any, *args, **kwargs):
    """Enqueue a job on the workflow queue."""
    return get_queue().enqueue(func, *args, **kwargs)
