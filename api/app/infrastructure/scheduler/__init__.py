"""
Tareas periodicas del proceso (APScheduler).
"""
from app.infrastructure.scheduler.poll_scheduler import PollScheduler

__all__ = ["PollScheduler"]
