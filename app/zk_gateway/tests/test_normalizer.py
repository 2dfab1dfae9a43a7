from datetime import datetime
from zoneinfo import ZoneInfo

from django.test import SimpleTestCase, override_settings

from zk_gateway.exceptions import NoTimestamp, NoUserId, UnmappedDeviceUser
from zk_gateway.punches import CHECK_IN, CHECK_OUT, UNKNOWN
from zk_gateway.services.normalizer import (
    build_punch,
    normalize_entries,
    resolve_device_user_id,
    resolve_kind,
    resolve_timestamp,
)
from zk_gateway.tests.fakes import log_entry, utc

UTC = ZoneInfo("UTC")


class ResolveFieldTests(SimpleTestCase):
    def test_record_time_wins_over_epoch(self):
        entry = {"recordTime": "2026-03-02T08:00:00Z", "timestamp": 0}
        self.assertEqual(resolve_timestamp(entry, UTC), utc(2026, 3, 2, 8, 0))

    def test_epoch_seconds_fallback(self):
        entry = {"timestamp": 1772438400}
        self.assertEqual(resolve_timestamp(entry, UTC), utc(2026, 3, 2, 8, 0))

    def test_unparseable_record_time_falls_back_to_epoch(self):
        entry = {"recordTime": "yesterday", "timestamp": "1772438400"}
        self.assertEqual(resolve_timestamp(entry, UTC), utc(2026, 3, 2, 8, 0))

    def test_missing_timestamp(self):
        with self.assertRaises(NoTimestamp):
            resolve_timestamp({"recordTime": "", "timestamp": None}, UTC)

    def test_naive_record_time_uses_device_timezone(self):
        karachi = ZoneInfo("Asia/Karachi")
        resolved = resolve_timestamp({"recordTime": "2026-03-02T13:00:00"}, karachi)
        self.assertEqual(resolved, utc(2026, 3, 2, 8, 0))

    @override_settings(ZK_DEVICE_TIMEZONE="Asia/Karachi")
    def test_device_timezone_setting_is_default(self):
        resolved = resolve_timestamp({"recordTime": "2026-03-02T13:00:00"})
        self.assertEqual(resolved, utc(2026, 3, 2, 8, 0))

    def test_user_id_field_precedence(self):
        self.assertEqual(resolve_device_user_id({"deviceUserId": "7", "uid": 3}), "7")
        self.assertEqual(resolve_device_user_id({"id": 9, "userId": "4"}), "9")
        self.assertEqual(resolve_device_user_id({"uid": 3, "userId": "4"}), "3")
        self.assertEqual(resolve_device_user_id({"userSn": 12}), "12")
        self.assertEqual(resolve_device_user_id({"deviceUserId": "  ", "userId": "4"}), "4")

    def test_zero_user_id_is_a_real_id(self):
        self.assertEqual(resolve_device_user_id({"uid": 0}), "0")

    def test_missing_user_id(self):
        with self.assertRaises(NoUserId):
            resolve_device_user_id({"recordTime": "2026-03-02T08:00:00Z"})

    def test_kind_from_type_then_state(self):
        self.assertEqual(resolve_kind({"type": 0}), CHECK_IN)
        self.assertEqual(resolve_kind({"type": "1"}), CHECK_OUT)
        self.assertEqual(resolve_kind({"type": 4, "state": 0}), CHECK_OUT)
        self.assertEqual(resolve_kind({"state": 0}), CHECK_IN)
        self.assertEqual(resolve_kind({}), UNKNOWN)

    def test_unmapped_user(self):
        with self.assertRaises(UnmappedDeviceUser) as exc:
            build_punch({"deviceUserId": "99"}, utc(2026, 3, 2, 8), {"1": 10})
        self.assertEqual(exc.exception.device_user_id, "99")


class NormalizeEntriesTests(SimpleTestCase):
    mapping = {"1": 10, "2": 20}

    def test_counts_each_skip_reason(self):
        entries = [
            log_entry("1", utc(2026, 3, 2, 8, 0), kind=0),
            log_entry("2", utc(2026, 3, 2, 9, 0)),
            {"deviceUserId": "1"},
            {"recordTime": "2026-03-02T10:00:00Z"},
            log_entry("55", utc(2026, 3, 2, 11, 0)),
            "garbage",
        ]

        punches, stats = normalize_entries(entries, self.mapping, tz=UTC)

        self.assertEqual([(p.member_id, p.kind) for p in punches], [(10, CHECK_IN), (20, UNKNOWN)])
        self.assertEqual(stats.processed, 6)
        self.assertEqual(stats.no_timestamp, 2)
        self.assertEqual(stats.no_user_id, 1)
        self.assertEqual(stats.unmapped, 1)
        self.assertEqual(stats.skipped, 4)

    def test_since_is_exclusive(self):
        since = utc(2026, 3, 2, 8, 0)
        entries = [
            log_entry("1", since),
            log_entry("1", utc(2026, 3, 2, 8, 0, 1)),
        ]

        punches, stats = normalize_entries(entries, self.mapping, since=since, tz=UTC)

        self.assertEqual([p.timestamp for p in punches], [utc(2026, 3, 2, 8, 0, 1)])
        self.assertEqual(stats.date_filtered, 1)

    def test_start_and_end_are_inclusive(self):
        start = utc(2026, 3, 1)
        end = datetime(2026, 3, 1, 23, 59, 59, 999999, tzinfo=UTC)
        entries = [
            log_entry("1", utc(2026, 2, 28, 23, 59, 59)),
            log_entry("1", start),
            log_entry("1", end),
            log_entry("1", utc(2026, 3, 2)),
        ]

        punches, stats = normalize_entries(entries, self.mapping, start=start, end=end, tz=UTC)

        self.assertEqual([p.timestamp for p in punches], [start, end])
        self.assertEqual(stats.date_filtered, 2)

    def test_empty_batch(self):
        punches, stats = normalize_entries([], self.mapping, tz=UTC)
        self.assertEqual(punches, [])
        self.assertEqual(stats.processed, 0)
