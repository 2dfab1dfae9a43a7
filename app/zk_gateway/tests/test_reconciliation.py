from datetime import date
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase

from attendance.models import AttendanceRecord
from zk_gateway.exceptions import RecordWriteError
from zk_gateway.punches import DailySession
from zk_gateway.services.reconciliation import (
    CREATED,
    SKIPPED,
    UNCHANGED,
    UPDATED,
    upsert_record,
    wipe_tenant_records,
    write_session,
)
from zk_gateway.tests.fakes import create_gym, utc


class WriteSessionTests(TestCase):
    def setUp(self):
        self.tenant, self.member, self.device = create_gym()

    def session(self, day, check_in, check_out):
        return DailySession(self.member.id, "1", day, check_in, check_out)

    def record(self, day, check_in, check_out):
        return AttendanceRecord.objects.create(
            tenant=self.tenant,
            member=self.member,
            date=day,
            check_in_time=check_in,
            check_out_time=check_out,
        )

    def test_creates_record(self):
        outcome, deleted = write_session(self.device, self.session(date(2026, 3, 2), utc(2026, 3, 2, 8), utc(2026, 3, 2, 17)))

        self.assertEqual((outcome, deleted), (CREATED, 0))
        record = AttendanceRecord.objects.get()
        self.assertEqual(record.date, date(2026, 3, 2))
        self.assertEqual(record.status, AttendanceRecord.STATUS_PRESENT)
        self.assertEqual(record.check_in_time, utc(2026, 3, 2, 8))
        self.assertEqual(record.check_out_time, utc(2026, 3, 2, 17))
        self.assertEqual(record.device_user_id, "1")
        self.assertEqual(record.device_serial_number, "CKJG200360123")

    def test_only_widens_existing_bounds(self):
        self.record(date(2026, 3, 2), utc(2026, 3, 2, 8), utc(2026, 3, 2, 17))

        outcome, _ = write_session(self.device, self.session(date(2026, 3, 2), utc(2026, 3, 2, 7, 30), utc(2026, 3, 2, 16)))

        self.assertEqual(outcome, UPDATED)
        record = AttendanceRecord.objects.get()
        self.assertEqual(record.check_in_time, utc(2026, 3, 2, 7, 30))
        self.assertEqual(record.check_out_time, utc(2026, 3, 2, 17))

    def test_fills_missing_check_out(self):
        self.record(date(2026, 3, 2), utc(2026, 3, 2, 8), None)

        outcome, _ = write_session(self.device, self.session(date(2026, 3, 2), utc(2026, 3, 2, 9), utc(2026, 3, 2, 18)))

        self.assertEqual(outcome, UPDATED)
        record = AttendanceRecord.objects.get()
        self.assertEqual(record.check_in_time, utc(2026, 3, 2, 8))
        self.assertEqual(record.check_out_time, utc(2026, 3, 2, 18))

    def test_narrower_session_leaves_record_untouched(self):
        existing = self.record(date(2026, 3, 2), utc(2026, 3, 2, 8), utc(2026, 3, 2, 17))

        outcome, _ = write_session(self.device, self.session(date(2026, 3, 2), utc(2026, 3, 2, 9), utc(2026, 3, 2, 10)))

        self.assertEqual(outcome, UNCHANGED)
        record = AttendanceRecord.objects.get()
        self.assertEqual(record.updated_at, existing.updated_at)

    def test_removes_record_stored_under_wrong_date(self):
        # Stored under the device-local day instead of the UTC day of its check-in.
        self.record(date(2026, 3, 2), utc(2026, 3, 1, 22), utc(2026, 3, 1, 23))

        outcome, deleted = write_session(self.device, self.session(date(2026, 3, 1), utc(2026, 3, 1, 22), utc(2026, 3, 1, 23)))

        self.assertEqual((outcome, deleted), (CREATED, 1))
        self.assertEqual(list(AttendanceRecord.objects.values_list("date", flat=True)), [date(2026, 3, 1)])

    def test_overnight_record_of_previous_day_is_kept(self):
        self.record(date(2026, 3, 1), utc(2026, 3, 1, 22), utc(2026, 3, 2, 1))

        outcome, deleted = write_session(self.device, self.session(date(2026, 3, 2), utc(2026, 3, 2, 8), utc(2026, 3, 2, 9)))

        self.assertEqual((outcome, deleted), (CREATED, 0))
        self.assertEqual(AttendanceRecord.objects.count(), 2)

    def test_session_without_bounds_is_skipped(self):
        outcome, deleted = write_session(self.device, self.session(None, None, None))

        self.assertEqual((outcome, deleted), (SKIPPED, 0))
        self.assertFalse(AttendanceRecord.objects.exists())

    def test_database_errors_are_wrapped(self):
        with patch("zk_gateway.services.reconciliation.upsert_record", side_effect=DatabaseError("disk full")):
            with self.assertRaises(RecordWriteError):
                write_session(self.device, self.session(date(2026, 3, 2), utc(2026, 3, 2, 8), utc(2026, 3, 2, 9)))

    def test_concurrent_insert_falls_back_to_update(self):
        self.record(date(2026, 3, 2), utc(2026, 3, 2, 8), utc(2026, 3, 2, 17))
        existing = AttendanceRecord.objects.filter(tenant_id=self.tenant.id, member_id=self.member.id, date=date(2026, 3, 2))
        missing = AttendanceRecord.objects.none()

        with patch.object(AttendanceRecord.objects, "filter", side_effect=[missing, existing]):
            outcome = upsert_record(self.device, self.session(date(2026, 3, 2), utc(2026, 3, 2, 7), utc(2026, 3, 2, 17)))

        self.assertEqual(outcome, UPDATED)
        record = AttendanceRecord.objects.get()
        self.assertEqual(record.check_in_time, utc(2026, 3, 2, 7))


class WipeTenantRecordsTests(TestCase):
    def test_only_target_tenant_is_wiped(self):
        tenant, member, _ = create_gym("ironworks")
        other_tenant, other_member, _ = create_gym("flexzone", ip_address="10.0.0.6")
        AttendanceRecord.objects.create(tenant=tenant, member=member, date=date(2026, 3, 2))
        AttendanceRecord.objects.create(tenant=other_tenant, member=other_member, date=date(2026, 3, 2))

        deleted = wipe_tenant_records(tenant.id)

        self.assertEqual(deleted, 1)
        self.assertEqual(list(AttendanceRecord.objects.values_list("tenant_id", flat=True)), [other_tenant.id])
