"""Task manager — periodic background jobs.

Runs the engine's cron jobs on asyncio tasks:

- ``refresh_prices`` reloads the USD price table from the live feed
- ``expire_payments`` moves overdue pending requests to expired
- ``purge_payments`` drops settled or expired requests past retention
"""

from __future__ import annotations

from solana_tax.taskmanager.manager import CronJob, JobState, TaskManager

__all__ = ["CronJob", "JobState", "TaskManager"]
