from apscheduler.schedulers.background import BackgroundScheduler

from app.core.config import AUTO_CANCELLATION_INTERVAL_MINUTES, PAYMENT_REMINDER_INTERVAL_MINUTES
from app.core.logging_config import get_logger
from app.services.auto_cancellation import scanner

logger = get_logger()

scheduler = BackgroundScheduler(timezone="UTC")


def run_auto_cancellation():
    try:
        scanner.run()
    except Exception as e:
        logger.bind(log_type="scheduler").exception(f"Auto-cancellation run crashed: {e}")


def run_payment_reminders():
    try:
        scanner.run_payment_reminders()
    except Exception as e:
        logger.bind(log_type="scheduler").exception(f"Payment reminder run crashed: {e}")


def init_scheduler():
    """Register the periodic jobs and start the background scheduler."""
    log = logger.bind(log_type="scheduler")

    if scheduler.running:
        log.info("Scheduler already running (skipping duplicate start)")
        return scheduler

    scheduler.add_job(
        run_auto_cancellation,
        "interval",
        minutes=AUTO_CANCELLATION_INTERVAL_MINUTES,
        id="auto_cancellation",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.add_job(
        run_payment_reminders,
        "interval",
        minutes=PAYMENT_REMINDER_INTERVAL_MINUTES,
        id="payment_reminders",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )

    scheduler.start()
    log.info(
        f"Scheduler started | Auto-cancellation every {AUTO_CANCELLATION_INTERVAL_MINUTES} min | "
        f"Reminders every {PAYMENT_REMINDER_INTERVAL_MINUTES} min"
    )
    return scheduler


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.bind(log_type="scheduler").info("Scheduler stopped")
