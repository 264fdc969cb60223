"""
Check remaining_minutes against the sum of ledger rows for every HOURS package.
Usage: python manage.py verify_package_ledger [--apply] [--package ID]
Without --apply: dry-run only (report, no changes).
"""
from django.core.management.base import BaseCommand

from packages.models import CoursePackage
from packages.services.integrity import find_ledger_mismatches, repair_package_ledger


class Command(BaseCommand):
    help = 'Verify package balances against their ledger rows'

    def add_arguments(self, parser):
        parser.add_argument(
            '--apply',
            action='store_true',
            help='Write an ADJUST row for each mismatch (default: dry-run only)',
        )
        parser.add_argument('--package', type=int, help='Only check this package id')

    def handle(self, *args, **options):
        apply = options['apply']
        if not apply:
            self.stdout.write(self.style.WARNING('DRY RUN - no changes will be made. Use --apply to fix.'))

        qs = CoursePackage.objects.filter(type=CoursePackage.TYPE_HOURS)
        if options.get('package'):
            qs = qs.filter(pk=options['package'])

        mismatches = find_ledger_mismatches(qs)
        if not mismatches:
            self.stdout.write(self.style.SUCCESS(f'All {qs.count()} HOURS packages balance.'))
            return

        for row in mismatches:
            self.stdout.write(
                f"  Package {row['packageId']}: remaining={row['remaining']} ledger={row['ledger']} diff={row['diff']:+d}"
            )
            if apply:
                repair_package_ledger(CoursePackage.objects.get(pk=row['packageId']))
                self.stdout.write(self.style.SUCCESS('    Reconciled with ADJUST row'))

        summary = f'{len(mismatches)} package(s) out of balance'
        if apply:
            self.stdout.write(self.style.SUCCESS(f'{summary}; fixed.'))
        else:
            self.stdout.write(self.style.WARNING(summary))
