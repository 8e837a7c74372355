import logging
from typing import Any, Mapping, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import load_config
from utils.memorization import run_daily_update

logger = logging.getLogger(__name__)

DAILY_JOB_ID = "daily_schedule_update"


def create_scheduler(config: Optional[Mapping[str, Any]] = None) -> Optional[BackgroundScheduler]:
    """Build (but do not start) the scheduler running the daily update.

    Returns None when the in-process trigger is disabled, e.g. when system
    cron runs ``main.py --run-daily`` instead.
    """
    if config is None:
        config = load_config()
    schedule_cfg = config.get("schedule", {})
    if not schedule_cfg.get("enabled", True):
        logger.info("Daily schedule update disabled in config")
        return None
    hour = int(schedule_cfg.get("daily_hour", 6))
    minute = int(schedule_cfg.get("daily_minute", 0))
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        run_daily_update,
        trigger=CronTrigger(hour=hour, minute=minute),
        id=DAILY_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    logger.info("Daily schedule update registered at %02d:%02d", hour, minute)
    return scheduler
