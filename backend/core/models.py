"""
Core models and mixins for HRS - Payroll Engine
"""
from django.db import models
from django.utils import timezone
import uuid

from .exceptions import ImmutableRecordError


class BaseModel(models.Model):
    """
    Abstract base model with common fields for all models.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class ImmutableModel(BaseModel):
    """
    Abstract base for records that are written once and never changed.
    Corrections are made by creating a new record, not editing an old one.
    """

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordError(
                f"{self.__class__.__name__} {self.pk} is immutable and cannot be updated"
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError(
            f"{self.__class__.__name__} {self.pk} is immutable and cannot be deleted"
        )


class AuditLog(ImmutableModel):
    """
    Append-only audit trail of payroll activity.
    One entry is written per payroll run attempt, whatever the outcome.
    """

    class Action(models.TextChoices):
        PAYROLL_RUN_EXECUTED = 'Payroll Run Executed', 'Payroll Run Executed'
        PAYROLL_RUN_FAILED = 'Payroll Run Failed', 'Payroll Run Failed'

    timestamp = models.DateTimeField(default=timezone.now)
    actor = models.CharField(max_length=150)
    action = models.CharField(max_length=50, choices=Action.choices)
    details = models.TextField(blank=True)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['action', 'timestamp'], name='auditlog_action_ts_idx'),
            models.Index(fields=['actor', 'timestamp'], name='auditlog_actor_ts_idx'),
        ]

    def __str__(self):
        return f"{self.actor} - {self.action} at {self.timestamp}"

    @classmethod
    def log(cls, actor, action, details='', timestamp=None):
        """Helper method to create audit log entries."""
        return cls.objects.create(
            actor=actor,
            action=action,
            details=details or '',
            timestamp=timestamp or timezone.now(),
        )

    def as_entry(self) -> dict:
        return {
            'actor': self.actor,
            'action': self.action,
            'details': self.details,
            'timestamp': self.timestamp.isoformat(),
        }
