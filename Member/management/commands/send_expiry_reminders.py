from django.core.management.base import BaseCommand

from Member.reminders import send_expiry_reminders


class Command(BaseCommand):
    help = 'Email members whose membership expires within the reminder window (one-shot, for system cron)'

    def handle(self, *args, **options):
        summary = send_expiry_reminders()
        self.stdout.write(
            f"Matched {summary['matched']}, sent {summary['sent']}, "
            f"skipped {summary['skipped']}, failed {summary['failed']}"
        )
