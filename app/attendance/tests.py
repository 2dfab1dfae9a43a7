from datetime import date, datetime, timezone as dt_timezone

from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase

from attendance.models import AttendanceRecord
from members.models import Member
from tenants.models import Tenant


User = get_user_model()


def utc(*args):
    return datetime(*args, tzinfo=dt_timezone.utc)


class AttendanceRecordApiTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='alice', password='pwd12345')
        self.tenant = Tenant.objects.create(name='Ironworks', code='ironworks')
        other_tenant = Tenant.objects.create(name='Flexzone', code='flexzone')
        self.sara = Member.objects.create(tenant=self.tenant, name='Sara Khan')
        self.omar = Member.objects.create(tenant=self.tenant, name='Omar Ali')
        stranger = Member.objects.create(tenant=other_tenant, name='Stranger')

        AttendanceRecord.objects.create(
            tenant=self.tenant, member=self.sara, date=date(2026, 3, 1),
            check_in_time=utc(2026, 3, 1, 8), check_out_time=utc(2026, 3, 1, 9),
        )
        AttendanceRecord.objects.create(
            tenant=self.tenant, member=self.omar, date=date(2026, 3, 2), check_in_time=utc(2026, 3, 2, 8),
        )
        AttendanceRecord.objects.create(tenant=other_tenant, member=stranger, date=date(2026, 3, 2))

        self.client.force_authenticate(self.user)
        self.client.credentials(HTTP_X_TENANT_CODE='ironworks')

    def test_lists_current_tenant_records_newest_first(self):
        response = self.client.get('/api/attendance/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['member_name'] for item in response.data['records']], ['Omar Ali', 'Sara Khan'])

    def test_filters(self):
        by_member = self.client.get(f'/api/attendance/?member={self.sara.pk}')
        by_range = self.client.get('/api/attendance/?startDate=2026-03-02&endDate=2026-03-31')
        still_open = self.client.get('/api/attendance/?open=true')

        self.assertEqual([item['date'] for item in by_member.data['records']], ['2026-03-01'])
        self.assertEqual([item['date'] for item in by_range.data['records']], ['2026-03-02'])
        self.assertEqual([item['member'] for item in still_open.data['records']], [self.omar.pk])

    def test_bad_date_filter(self):
        response = self.client.get('/api/attendance/?startDate=yesterday')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('startDate', response.data)

    def test_records_are_read_only(self):
        response = self.client.post('/api/attendance/', {'member': self.sara.pk, 'date': '2026-03-03'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_pagination(self):
        first = self.client.get('/api/attendance/?limit=1')
        second = self.client.get('/api/attendance/?limit=1&page=2')

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(first.data['pagination'], {'page': 1, 'limit': 1, 'total': 2, 'totalPages': 2})
        self.assertEqual([item['member_name'] for item in first.data['records']], ['Omar Ali'])
        self.assertEqual([item['member_name'] for item in second.data['records']], ['Sara Khan'])

    def test_default_page_size(self):
        response = self.client.get('/api/attendance/')

        self.assertEqual(response.data['pagination']['limit'], 50)
        self.assertEqual(response.data['pagination']['total'], 2)
