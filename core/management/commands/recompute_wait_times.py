from datetime import date

from django.core.management.base import BaseCommand, CommandError

from core.services.estimator import recompute_wait_times
from core.services.numbering import facility_today


class Command(BaseCommand):
    help = "Recompute estimated wait minutes for a queue date (default: today at the facility)."

    def add_arguments(self, parser):
        parser.add_argument('--date', dest='date', help='queue date as YYYY-MM-DD')

    def handle(self, *args, **options):
        raw = options.get('date')
        if raw:
            try:
                queue_date = date.fromisoformat(raw)
            except ValueError:
                raise CommandError(f'invalid date {raw!r}, expected YYYY-MM-DD')
        else:
            queue_date = facility_today()

        changed = recompute_wait_times(queue_date)
        self.stdout.write(self.style.SUCCESS(f"Recomputed wait times for {queue_date}: {changed} entries changed"))
