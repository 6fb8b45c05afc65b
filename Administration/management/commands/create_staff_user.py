import getpass

from django.core.management.base import BaseCommand, CommandError

from Administration.models import StaffUser


class Command(BaseCommand):
    help = 'Create (or reset the password of) an admin or staff login'

    def add_arguments(self, parser):
        parser.add_argument('--email', type=str, required=True)
        parser.add_argument('--name', type=str, default='')
        parser.add_argument('--role', type=str, choices=[StaffUser.ROLE_ADMIN, StaffUser.ROLE_STAFF], default=StaffUser.ROLE_STAFF)
        parser.add_argument('--password', type=str, help='Prompted for when omitted')

    def handle(self, *args, **options):
        email = StaffUser.objects.normalize_email(options['email'])
        password = options['password'] or getpass.getpass('Password: ')
        if not password:
            raise CommandError('A password is required')

        user = StaffUser.objects.filter(email__iexact=email).first()
        if user:
            user.set_password(password)
            user.role = options['role']
            if options['name']:
                user.name = options['name']
            user.is_active = True
            user.save()
            self.stdout.write(self.style.WARNING(f'Updated existing user {user.email} ({user.role})'))
            return

        user = StaffUser.objects.create_user(email, password, name=options['name'], role=options['role'])
        self.stdout.write(self.style.SUCCESS(f'Created {user.role} user {user.email}'))
