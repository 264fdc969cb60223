"""
AppSetting access helpers.
"""
import json
import logging

from core.models import AppSetting

logger = logging.getLogger(__name__)


def get_setting(key, default=None):
    row = AppSetting.objects.filter(key=key).only('value').first()
    return row.value if row is not None else default


def set_setting(key, value):
    AppSetting.objects.update_or_create(key=key, defaults={'value': '' if value is None else str(value)})


def get_json_setting(key, default=None):
    raw = get_setting(key)
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning(f"[settings] Unparseable JSON in setting {key!r}, using default")
        return default


def set_json_setting(key, value):
    set_setting(key, json.dumps(value, ensure_ascii=False))


def get_email_list_setting(key):
    """Comma-separated emails -> normalized, de-duplicated list (order kept)."""
    raw = get_setting(key) or ''
    return dedupe_emails(raw.split(','))


def dedupe_emails(emails):
    seen = []
    for email in emails:
        normalized = str(email or '').strip().lower()
        if normalized and normalized not in seen:
            seen.append(normalized)
    return seen
