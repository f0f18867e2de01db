import logging
from typing import Optional

from ..models import AuditLog, Company

logger = logging.getLogger(__name__)


def log_action(
    *,
    action: str,
    instance,
    user=None,
    company: Optional[Company] = None,
    changes: dict | None = None,
):
    """
    Central audit logger.
    Writes one AuditLog row and mirrors it to the module logger.
    """

    if not company:
        company = getattr(instance, "company", None)

    logger.info(
        "%s %s(%s) by %s: %s",
        action,
        instance.__class__.__name__,
        instance.pk,
        user or "system",
        changes or {},
    )

    return AuditLog.objects.create(
        company=company,
        user=user,
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        changes=changes,
    )
