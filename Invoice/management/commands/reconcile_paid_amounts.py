from django.core.management.base import BaseCommand

from Invoice.services import reconcile_paid_amounts


class Command(BaseCommand):
    help = 'Set paid_amount = total_amount (and a paid date) on PAID invoices where they drifted apart'

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help='Only list the invoices that would change')

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        fixed = reconcile_paid_amounts(dry_run=dry_run)

        if not fixed:
            self.stdout.write(self.style.SUCCESS('All PAID invoices are consistent'))
            return

        for number, old_paid, total in fixed:
            self.stdout.write(f'{number}: paid {old_paid} -> {total}')

        if dry_run:
            self.stdout.write(self.style.WARNING(f'{len(fixed)} invoice(s) would be fixed (dry run)'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Fixed {len(fixed)} invoice(s)'))
