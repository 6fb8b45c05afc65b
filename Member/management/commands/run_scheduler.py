import logging

from django.conf import settings
from django.core.management.base import BaseCommand

from Invoice.services import mark_overdue
from Member.reminders import send_expiry_reminders

logger = logging.getLogger(__name__)


def daily_job():
    try:
        send_expiry_reminders()
    except Exception as e:
        logger.error("Expiry reminder job failed: %s", e, exc_info=True)
    try:
        mark_overdue()
    except Exception as e:
        logger.error("Overdue marking job failed: %s", e, exc_info=True)


class Command(BaseCommand):
    help = 'Run the daily expiry-reminder and overdue-marking job in the foreground'

    def add_arguments(self, parser):
        parser.add_argument('--run-now', action='store_true', help='Run the job once immediately before scheduling')

    def handle(self, *args, **options):
        from apscheduler.schedulers.blocking import BlockingScheduler
        from apscheduler.triggers.cron import CronTrigger

        hour = settings.EXPIRY_REMINDER_HOUR
        minute = settings.EXPIRY_REMINDER_MINUTE

        if options['run_now']:
            daily_job()

        scheduler = BlockingScheduler(timezone=settings.TIME_ZONE)
        scheduler.add_job(
            daily_job,
            CronTrigger(hour=hour, minute=minute, timezone=settings.TIME_ZONE),
            id='daily-membership-job',
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )
        self.stdout.write(f'Scheduler started: daily job at {hour:02d}:{minute:02d} {settings.TIME_ZONE}')
        try:
            scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            self.stdout.write('Scheduler stopped')
