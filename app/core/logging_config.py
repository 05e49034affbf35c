from loguru import logger
import os
import sys

from app.core.config import LOG_DIR

# Create folder if missing
if not os.path.exists(LOG_DIR):
    os.makedirs(LOG_DIR)

# Remove default handler
logger.remove()

# Console output
logger.add(
    sys.stderr,
    level="INFO",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[log_type]: <12} | {message}"
)

# General application log
logger.add(
    f"{LOG_DIR}/app.log",
    rotation="1 week",
    retention="4 weeks",
    level="INFO",
    enqueue=True,
    format="{time} | {level} | {message}"
)


def _topic_sink(log_type: str):
    logger.add(
        f"{LOG_DIR}/{log_type}s.log",
        rotation="1 week",
        retention="4 weeks",
        level="INFO",
        enqueue=True,
        filter=lambda record: record["extra"].get("log_type") == log_type,
        format="{time} | {level} | {message}"
    )


# Booking lifecycle, payments, venue cascade, scanner runs, outbound notifications
for _log_type in ("booking", "payment", "cascade", "scheduler", "notification"):
    _topic_sink(_log_type)

# Error logs
logger.add(
    f"{LOG_DIR}/errors.log",
    rotation="1 week",
    retention="8 weeks",
    level="ERROR",
    enqueue=True,
)

logger.configure(extra={"log_type": "app"})


def get_logger():
    return logger
