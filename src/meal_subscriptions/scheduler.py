"""Recurring order generation: python -m meal_subscriptions.scheduler"""

import logging
import signal
import sys

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from meal_subscriptions.app_logging import configure_logging
from meal_subscriptions.containers import AppContainer, build_container
from meal_subscriptions.domain.orders import GenerationResult

ORDER_GENERATION_JOB_ID = "generate_subscription_orders"

_logger = logging.getLogger(__name__)


def run_order_generation(container: AppContainer) -> GenerationResult:
    """Run one order generation pass for today."""
    result = container.order_generator.generate(
        deadline_seconds=container.settings.order_generation_deadline_seconds,
    )
    if result.failed:
        _logger.error(
            "Scheduled order generation had failures: failed=%s errors=%s",
            result.failed,
            result.errors,
        )
    return result


def build_scheduler(
    container: AppContainer, scheduler: BaseScheduler | None = None
) -> BaseScheduler:
    """Register the daily order generation job."""
    settings = container.settings
    resolved = scheduler or BlockingScheduler(timezone=settings.business_timezone)
    resolved.add_job(
        run_order_generation,
        CronTrigger.from_crontab(
            settings.order_generation_cron, timezone=settings.business_timezone
        ),
        args=[container],
        id=ORDER_GENERATION_JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    return resolved


def main() -> None:
    """Start the blocking scheduler until interrupted."""
    configure_logging()
    container = build_container()
    scheduler = build_scheduler(container)

    def _shutdown(signum, frame) -> None:  # noqa: ANN001, ARG001
        _logger.info("Scheduler stopping: signal=%s", signum)
        scheduler.shutdown(wait=False)
        sys.exit(0)

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)
    _logger.info(
        "Scheduler started: cron=%s timezone=%s",
        container.settings.order_generation_cron,
        container.settings.business_timezone,
    )
    scheduler.start()


if __name__ == "__main__":
    main()
