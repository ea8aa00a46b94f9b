"""
Cron scheduling for the export job.

Expressions have six fields: ``second minute hour day month day_of_week``
(default ``0 0 */4 * * *``, every four hours on the hour). Runs never
overlap within one process.

``day_of_week`` follows classic cron numbering (0 or 7 is Sunday, 1 is
Monday). APScheduler counts from Monday, so numeric weekdays are rewritten
to day names before the trigger is built.
"""

from collections.abc import Callable
from datetime import datetime, timezone

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from fhir_link.config import ScheduleSettings


CRON_FIELDS = ("second", "minute", "hour", "day", "month", "day_of_week")

WEEKDAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")

JOB_ID = "build_merged_patient_csv"


def _weekday_number(value: str) -> int:
    if value.isdigit() and int(value) <= 7:
        return int(value)
    name = value.lower()
    if name in WEEKDAY_NAMES:
        return WEEKDAY_NAMES.index(name)
    raise ValueError(f"Invalid day of week: {value!r}")


def translate_day_of_week(field: str) -> str:
    """
    Rewrite a cron ``day_of_week`` field as APScheduler day names.

    Supports ``*``, single days, ranges, lists and ``/`` steps, e.g.
    ``1-5`` -> ``mon,tue,wed,thu,fri`` and ``*/2`` -> ``sun,tue,thu,sat``.
    """
    if field == "*":
        return field

    days = []
    for part in field.split(","):
        base, _, step = part.partition("/")
        if base == "*":
            first, last = 0, 6
        elif "-" in base:
            first, last = (_weekday_number(v) for v in base.split("-", 1))
        else:
            first = _weekday_number(base)
            last = 6 if step else first

        if first > last:
            raise ValueError(f"Invalid day of week range: {part!r}")
        increment = int(step) if step else 1
        if increment < 1:
            raise ValueError(f"Invalid day of week step: {part!r}")

        days.extend(WEEKDAY_NAMES[day % 7] for day in range(first, last + 1, increment))

    return ",".join(dict.fromkeys(days))


def parse_cron(expression: str, tz: str = "UTC") -> CronTrigger:
    """Build a CronTrigger from a six-field cron expression."""
    values = expression.split()
    if len(values) != len(CRON_FIELDS):
        raise ValueError(
            f"Expected {len(CRON_FIELDS)} cron fields ({' '.join(CRON_FIELDS)}), got {expression!r}"
        )
    fields = dict(zip(CRON_FIELDS, values))
    fields["day_of_week"] = translate_day_of_week(fields["day_of_week"])
    return CronTrigger(timezone=tz, **fields)


def next_fire_time(trigger: CronTrigger, now: datetime | None = None) -> datetime | None:
    now = now or datetime.now(timezone.utc)
    return trigger.get_next_fire_time(None, now)


def build_scheduler(
    run: Callable[[], object],
    schedule_settings: ScheduleSettings,
) -> BlockingScheduler:
    """
    Create a blocking scheduler that calls ``run`` on the configured cron.

    With ``run_on_startup`` the first run fires immediately.
    """
    trigger = parse_cron(schedule_settings.cron, schedule_settings.timezone)
    scheduler = BlockingScheduler(timezone=schedule_settings.timezone)

    def scheduled_run():
        run()
        upcoming = next_fire_time(trigger)
        logger.info(f"Next run scheduled at {upcoming.isoformat() if upcoming else 'never'}")

    job_kwargs = {}
    if schedule_settings.run_on_startup:
        job_kwargs["next_run_time"] = datetime.now(timezone.utc)

    scheduler.add_job(
        scheduled_run,
        trigger,
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
        **job_kwargs,
    )
    return scheduler
