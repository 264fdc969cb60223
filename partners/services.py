"""
Partner billing services.
- Approver lists (AppSetting, comma separated emails)
- Manager/finance sign-off on a settlement
- Online usage snapshot taken right before a partner package is topped up
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.services import dedupe_emails, get_email_list_setting, get_setting, set_setting
from core.utils import normalize_email, round_half_up
from packages.models import CoursePackage
from partners.models import PartnerSettlement, SettlementApproval

logger = logging.getLogger(__name__)

MANAGER_APPROVER_KEY = 'approval_manager_emails_v1'
FINANCE_APPROVER_KEY = 'approval_finance_emails_v1'
ONLINE_RATE_KEY = 'partner_settlement_online_rate_per_45'
DEFAULT_ONLINE_RATE_PER_45 = 70


# ---------- Approver configuration ----------

def get_approval_config():
    managers = get_email_list_setting(MANAGER_APPROVER_KEY)
    if not managers:
        managers = dedupe_emails(settings.DEFAULT_MANAGER_APPROVER_EMAILS)
    return {
        'managerApproverEmails': managers,
        'financeApproverEmails': get_email_list_setting(FINANCE_APPROVER_KEY),
    }


def save_approval_config(manager_emails_raw, finance_emails_raw):
    managers = dedupe_emails(str(manager_emails_raw or '').split(','))
    finance = dedupe_emails(str(finance_emails_raw or '').split(','))
    with transaction.atomic():
        set_setting(MANAGER_APPROVER_KEY, ','.join(managers))
        set_setting(FINANCE_APPROVER_KEY, ','.join(finance))
    return {'managerApproverEmails': managers, 'financeApproverEmails': finance}


def is_role_approver(email, approver_emails):
    return bool(email) and normalize_email(email) in approver_emails


def are_all_approvers_confirmed(approved_by, approver_emails):
    if not approver_emails:
        return False
    confirmed = {normalize_email(e) for e in approved_by or []}
    return all(normalize_email(e) in confirmed for e in approver_emails)


# ---------- Settlement approvals ----------

def get_approval(settlement):
    approval, _ = SettlementApproval.objects.get_or_create(settlement=settlement)
    return approval


def manager_approve(settlement, email):
    email = normalize_email(email)
    with transaction.atomic():
        approval = get_approval(settlement)
        if email not in approval.manager_approved_by:
            approval.manager_approved_by = approval.manager_approved_by + [email]
        approval.manager_rejected_at = None
        approval.manager_rejected_by = None
        approval.manager_reject_reason = None
        approval.save()
    return approval


def manager_reject(settlement, email, reason):
    """A manager rejection voids finance sign-off and any export."""
    email = normalize_email(email)
    with transaction.atomic():
        approval = get_approval(settlement)
        approval.manager_approved_by = [e for e in approval.manager_approved_by if e != email]
        approval.finance_approved_by = []
        approval.exported_at = None
        approval.exported_by = None
        approval.manager_rejected_at = timezone.now()
        approval.manager_rejected_by = email
        approval.manager_reject_reason = (reason or '').strip()
        approval.save()
    return approval


def finance_approve(settlement, email):
    email = normalize_email(email)
    with transaction.atomic():
        approval = get_approval(settlement)
        if email not in approval.finance_approved_by:
            approval.finance_approved_by = approval.finance_approved_by + [email]
        approval.finance_rejected_at = None
        approval.finance_rejected_by = None
        approval.finance_reject_reason = None
        approval.save()
    return approval


def finance_reject(settlement, email, reason):
    email = normalize_email(email)
    with transaction.atomic():
        approval = get_approval(settlement)
        approval.finance_approved_by = [e for e in approval.finance_approved_by if e != email]
        approval.exported_at = None
        approval.exported_by = None
        approval.finance_rejected_at = timezone.now()
        approval.finance_rejected_by = email
        approval.finance_reject_reason = (reason or '').strip()
        approval.save()
    return approval


def is_fully_approved(settlement, config=None):
    config = config or get_approval_config()
    approval = SettlementApproval.objects.filter(settlement=settlement).first()
    if approval is None:
        return False
    return (
        are_all_approvers_confirmed(approval.manager_approved_by, config['managerApproverEmails'])
        and are_all_approvers_confirmed(approval.finance_approved_by, config['financeApproverEmails'])
    )


def mark_exported(settlement, user):
    approval = get_approval(settlement)
    approval.exported_at = timezone.now()
    approval.exported_by = user
    approval.save(update_fields=['exported_at', 'exported_by', 'updated_at'])
    return approval


# ---------- Online snapshot ----------

def online_rate_per_45():
    raw = get_setting(ONLINE_RATE_KEY)
    try:
        rate = float(raw) if raw not in (None, '') else DEFAULT_ONLINE_RATE_PER_45
    except ValueError:
        return DEFAULT_ONLINE_RATE_PER_45
    return rate if rate >= 0 else DEFAULT_ONLINE_RATE_PER_45


def amount_for_minutes(minutes, rate_per_45):
    if minutes <= 0 or rate_per_45 < 0:
        return 0
    return round_half_up(minutes / 45 * rate_per_45)


def minutes_to_hours(minutes):
    return (Decimal(minutes) / Decimal(60)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def is_partner_student(student):
    return student.source_id is not None and student.source.name == settings.PARTNER_SOURCE_NAME


def snapshot_online_settlement_before_top_up(package):
    """
    Partner online packages are billed when they run out. Before new minutes
    are added, record a PENDING settlement for everything consumed since the
    last snapshot. Returns the settlement or None.
    """
    if package.settlement_mode != CoursePackage.SETTLEMENT_ONLINE_PACKAGE_END:
        return None
    if (package.remaining_minutes or 0) > 0:
        return None
    if not is_partner_student(package.student):
        return None

    total_now = max(0, package.total_minutes if package.total_minutes is not None else (package.remaining_minutes or 0))
    snapshots = PartnerSettlement.objects.filter(
        package=package,
        mode=PartnerSettlement.MODE_ONLINE_PACKAGE_END,
        online_snapshot_total_minutes__isnull=False,
    )
    if snapshots.filter(online_snapshot_total_minutes=total_now).exists():
        return None
    latest = snapshots.order_by('-online_snapshot_total_minutes', '-created_at').first()
    settled_up_to = max(0, latest.online_snapshot_total_minutes) if latest else 0
    delta = max(0, total_now - settled_up_to)
    if delta <= 0:
        return None

    settlement = PartnerSettlement.objects.create(
        student_id=package.student_id,
        package=package,
        mode=PartnerSettlement.MODE_ONLINE_PACKAGE_END,
        status=PartnerSettlement.STATUS_PENDING,
        online_snapshot_total_minutes=total_now,
        hours=minutes_to_hours(delta),
        amount=amount_for_minutes(delta, online_rate_per_45()),
        note=(
            f"Auto snapshot before top-up: {package.course.name} | packageId={package.pk} "
            f"| settled {settled_up_to}->{total_now} mins"
        ),
    )
    logger.info(f"[partners] Snapshot settlement {settlement.pk} for package {package.pk}: {delta} mins")
    return settlement
