from django.core.management.base import BaseCommand
from django.db import transaction
from accounts.models import User


class Command(BaseCommand):
    help = 'Seed one login per role for a fresh Market Lens install'

    DEFAULT_USERS = [
        {'email': 'admin@marketlens.local', 'first_name': 'Shop', 'last_name': 'Admin', 'role': 'admin', 'is_staff': True},
        {'email': 'warehouse@marketlens.local', 'first_name': 'Warehouse', 'last_name': 'Desk', 'role': 'warehouse'},
        {'email': 'market@marketlens.local', 'first_name': 'Market', 'last_name': 'Runner', 'role': 'market_person'},
        {'email': 'accounts@marketlens.local', 'first_name': 'Accounts', 'last_name': 'Desk', 'role': 'accountant'},
    ]

    def add_arguments(self, parser):
        parser.add_argument(
            '--password',
            default='changeme123',
            help='Password given to every seeded user',
        )
        parser.add_argument(
            '--reset-passwords',
            action='store_true',
            help='Reset the password of users that already exist',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        created_count = 0
        for data in self.DEFAULT_USERS:
            user, created = User.objects.get_or_create(
                email=data['email'],
                defaults={key: value for key, value in data.items() if key != 'email'},
            )
            if created or options['reset_passwords']:
                user.set_password(options['password'])
                user.save(update_fields=['password'])
            if created:
                created_count += 1
                self.stdout.write(f'Created {user.get_role_display()} user: {user.email}')
            else:
                self.stdout.write(f'User already exists: {user.email}')

        self.stdout.write(self.style.SUCCESS(f'Seeded {created_count} new user(s)'))
