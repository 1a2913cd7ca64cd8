"""
Audit Recorder Service
Appends run outcomes to the audit log without ever failing the caller.
"""
from datetime import datetime
from typing import Optional
import logging

from django.db import transaction

from core.models import AuditLog

logger = logging.getLogger('payroll')


class AuditRecorder:
    """
    Fire-and-forget writer for AuditLog entries.

    A failure to write the audit entry is logged and swallowed so that it
    never changes the outcome reported for the operation being audited.
    """

    def record(
        self,
        actor: str,
        action: str,
        details: str,
        timestamp: Optional[datetime] = None,
    ) -> Optional[AuditLog]:
        try:
            with transaction.atomic():
                entry = AuditLog.log(actor, action, details, timestamp)
        except Exception:
            logger.exception(f"Failed to write audit log entry: actor={actor}, action={action}")
            return None

        logger.debug(f"Audit: {entry.actor} - {entry.action}: {entry.details}")
        return entry
