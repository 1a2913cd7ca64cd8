"""
Tests for the audit log and audit recorder.
"""
import datetime
from unittest import mock

from django.test import TestCase
from django.utils import timezone

from core.exceptions import ImmutableRecordError
from core.models import AuditLog
from core.services.audit import AuditRecorder


class AuditLogTests(TestCase):

    def test_entry_shape(self):
        timestamp = timezone.now()
        entry = AuditLog.log('Payroll Admin', AuditLog.Action.PAYROLL_RUN_EXECUTED, 'Processed payroll', timestamp)

        payload = entry.as_entry()
        self.assertEqual(set(payload), {'actor', 'action', 'details', 'timestamp'})
        self.assertEqual(payload['actor'], 'Payroll Admin')
        self.assertEqual(payload['action'], 'Payroll Run Executed')
        self.assertEqual(datetime.datetime.fromisoformat(payload['timestamp']), timestamp)

    def test_timestamp_defaults_to_now(self):
        before = timezone.now()
        entry = AuditLog.log('System', AuditLog.Action.PAYROLL_RUN_FAILED, 'No config')
        self.assertGreaterEqual(entry.timestamp, before)

    def test_entries_cannot_be_updated(self):
        entry = AuditLog.log('System', AuditLog.Action.PAYROLL_RUN_FAILED, 'No config')
        entry.details = 'edited'
        with self.assertRaises(ImmutableRecordError):
            entry.save()
        entry.refresh_from_db()
        self.assertEqual(entry.details, 'No config')

    def test_entries_cannot_be_deleted(self):
        entry = AuditLog.log('System', AuditLog.Action.PAYROLL_RUN_FAILED, 'No config')
        with self.assertRaises(ImmutableRecordError):
            entry.delete()
        self.assertEqual(AuditLog.objects.count(), 1)


class AuditRecorderTests(TestCase):

    def setUp(self):
        self.recorder = AuditRecorder()

    def test_record_appends_entry(self):
        entry = self.recorder.record('System', AuditLog.Action.PAYROLL_RUN_EXECUTED, 'ok')
        self.assertIsNotNone(entry)
        self.assertEqual(AuditLog.objects.count(), 1)

        self.recorder.record('System', AuditLog.Action.PAYROLL_RUN_FAILED, 'failed')
        self.assertEqual(AuditLog.objects.count(), 2)

    def test_write_failure_is_logged_not_raised(self):
        with mock.patch.object(AuditLog, 'log', side_effect=RuntimeError('database is locked')):
            with self.assertLogs('payroll', level='ERROR') as logs:
                entry = self.recorder.record('System', AuditLog.Action.PAYROLL_RUN_FAILED, 'failed')

        self.assertIsNone(entry)
        self.assertIn('Failed to write audit log entry', logs.output[0])
        self.assertEqual(AuditLog.objects.count(), 0)
