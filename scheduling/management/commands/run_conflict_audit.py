"""
Run the scheduling conflict audit and refresh today's cached snapshot.
Usage: python manage.py run_conflict_audit [--autofix]
With --autofix: clear teacher overrides that double-book when the class teacher is free.
"""
from django.core.management.base import BaseCommand

from scheduling.services.conflict_audit import (
    auto_resolve_teacher_conflicts,
    refresh_daily_conflict_audit,
    save_autofix_result,
)


class Command(BaseCommand):
    help = 'Scan the next 30 days for teacher/room double bookings and other schedule issues'

    def add_arguments(self, parser):
        parser.add_argument(
            '--autofix',
            action='store_true',
            help='Fall back to the class teacher where that resolves a teacher conflict',
        )

    def handle(self, *args, **options):
        if options['autofix']:
            result = auto_resolve_teacher_conflicts()
            save_autofix_result(result)
            self.stdout.write(
                f"Auto-fix {result['scannedFrom']}..{result['scannedTo']}: "
                f"detected={result['detectedPairs']} fixed={result['fixedSessions']} skipped={result['skippedPairs']}"
            )
            for note in result['notes']:
                self.stdout.write(f'  {note}')

        snapshot = refresh_daily_conflict_audit()
        self.stdout.write(f"Scanned {snapshot['scannedFrom']}..{snapshot['scannedTo']}")
        for line in snapshot['sample']:
            self.stdout.write(f'  {line}')
        if snapshot['totalIssues']:
            self.stdout.write(self.style.WARNING(f"Total issues: {snapshot['totalIssues']}"))
        else:
            self.stdout.write(self.style.SUCCESS('No conflict found.'))
