"""
Ledger balance identity: for an HOURS package,
remaining_minutes == sum(txn.delta_minutes) (PURCHASE rows carry the bought amount).
"""
import logging

from django.db import transaction
from django.db.models import Sum

from packages.models import CoursePackage, PackageTxn
from packages.services import ledger

logger = logging.getLogger(__name__)


def ledger_sum(package):
    return package.txns.aggregate(total=Sum('delta_minutes'))['total'] or 0


def verify_package_ledger(package):
    """Returns {packageId, remaining, ledger, diff, ok}. MONTHLY packages always pass."""
    remaining = package.remaining_minutes or 0
    expected = ledger_sum(package)
    ok = package.type != CoursePackage.TYPE_HOURS or remaining == expected
    return {
        'packageId': package.pk,
        'remaining': remaining,
        'ledger': expected,
        'diff': remaining - expected,
        'ok': ok,
    }


def find_ledger_mismatches(queryset=None):
    qs = queryset if queryset is not None else CoursePackage.objects.filter(type=CoursePackage.TYPE_HOURS)
    return [r for r in (verify_package_ledger(p) for p in qs.order_by('id')) if not r['ok']]


def repair_package_ledger(package, user=None):
    """Record the unexplained difference as an ADJUST row so the identity holds again."""
    with transaction.atomic():
        locked = ledger.lock_package(package.pk)
        result = verify_package_ledger(locked)
        if result['ok']:
            return None
        txn = PackageTxn.objects.create(
            package=locked,
            kind=PackageTxn.KIND_ADJUST,
            delta_minutes=result['diff'],
            note=f"Ledger reconcile: remaining={result['remaining']} ledger={result['ledger']}",
            created_by=user,
        )
    logger.warning(f"[ledger] Reconciled package {package.pk} diff={result['diff']}")
    return txn
