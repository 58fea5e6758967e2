"""
Background Jobs Module

Handles scheduled tasks for:
- Reliability score refresh
"""

from app.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler
from app.jobs.score_jobs import refresh_stale_scores

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "refresh_stale_scores",
]
