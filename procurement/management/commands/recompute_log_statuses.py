from django.core.management.base import BaseCommand
from django.db import transaction
from procurement.constants import STATUS_DISCREPANCY, ACTION_STATUS_RECOMPUTED
from procurement.lifecycle import derive_status, history_entry
from procurement.models import DailyLog


class Command(BaseCommand):
    help = 'Re-derive the status of every daily log from its quantities and fix stale rows'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only report logs whose stored status is stale',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        stale = 0

        with transaction.atomic():
            for log in DailyLog.objects.select_for_update().order_by('date', 'created_at'):
                if log.status == STATUS_DISCREPANCY:
                    continue
                expected = derive_status(log)
                if log.status == expected:
                    continue
                stale += 1
                self.stdout.write(f'{log.id} ({log.date}): {log.status} -> {expected}')
                if not dry_run:
                    log.history = list(log.history or []) + [
                        history_entry(ACTION_STATUS_RECOMPUTED, details=f'Status {log.status} -> {expected}')
                    ]
                    log.status = expected
                    log.version += 1
                    log.save(update_fields=['status', 'history', 'version', 'updated_at'])

        if dry_run:
            self.stdout.write(self.style.WARNING(f'{stale} stale log(s) found (dry run, nothing changed)'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Fixed {stale} stale log(s)'))
