"""Thread-safe registry of job_id -> CancellationToken for in-flight launch pipelines."""
import threading
import logging
from typing import Optional

from launchpad.modules.jobs.cancellation import CancellationToken

logger = logging.getLogger(__name__)
_lock = threading.Lock()
_registry: dict[str, CancellationToken] = {}


def register(job_id: str) -> CancellationToken:
    """Register a job; at most one pipeline may drive a job at a time."""
    with _lock:
        if job_id in _registry:
            raise RuntimeError(f"Job {job_id} is already running")
        token = CancellationToken()
        _registry[job_id] = token
        logger.debug(f"Registered job {job_id}")
        return token


def unregister(job_id: str) -> None:
    with _lock:
        _registry.pop(job_id, None)
        logger.debug(f"Unregistered job {job_id}")


def get_token(job_id: str) -> Optional[CancellationToken]:
    with _lock:
        return _registry.get(job_id)


def cancel(job_id: str) -> bool:
    """Signal cancellation. Returns True if the job is running in this process."""
    with _lock:
        token = _registry.get(job_id)
    if token is None:
        return False
    token.cancel()
    logger.info(f"Cancellation requested for job {job_id}")
    return True
