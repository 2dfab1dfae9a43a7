from datetime import datetime
from unittest.mock import patch

from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase
from zk.exception import ZKErrorResponse

from attendance.models import AttendanceRecord
from devices.models import DeviceUserMapping
from members.models import Member
from zk_gateway.tests.fakes import create_gym, fake_connection, fake_device, log_entry, utc


User = get_user_model()


class DeviceEndpointTests(APITestCase):
    def setUp(self):
        self.tenant, self.member, self.device = create_gym()
        self.user = User.objects.create_user(username='frontdesk', password='pwd12345')
        self.client.force_authenticate(self.user)
        self.client.credentials(HTTP_X_TENANT_CODE='ironworks')

    def url(self, action, device=None):
        return f'/api/devices/{(device or self.device).pk}/{action}'

    def test_requires_authentication(self):
        self.client.force_authenticate(None)
        response = self.client.post(self.url('sync-attendance'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_requires_tenant(self):
        self.client.credentials()
        response = self.client.post(self.url('sync-attendance'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_tenant(self):
        self.client.credentials(HTTP_X_TENANT_CODE='nope')
        response = self.client.post(self.url('sync-attendance'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['detail'], 'Unknown tenant')

    def test_tenant_from_query_string(self):
        self.client.credentials()
        with fake_device(fake_connection()):
            response = self.client.post(self.url('test') + '?tenant=ironworks')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_other_tenants_device_is_not_found(self):
        _, _, other_device = create_gym('flexzone', ip_address='10.0.0.6')

        response = self.client.post(self.url('sync-attendance', other_device))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['detail'], f'Device configuration with id {other_device.pk} not found')

    def test_sync_attendance(self):
        logs = [log_entry('1', utc(2026, 3, 2, 8)), log_entry('1', utc(2026, 3, 2, 17))]

        with fake_device(fake_connection(attendance=logs)):
            response = self.client.post(self.url('sync-attendance'), {'fullSync': True}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 1)
        self.assertTrue(response.data['summary']['isFullSync'])
        self.assertEqual(AttendanceRecord.objects.filter(tenant=self.tenant).count(), 1)

    def test_attendance_logs_alias_accepts_query_dates(self):
        logs = [log_entry('1', utc(2026, 3, 1, 8)), log_entry('1', utc(2026, 3, 2, 8))]

        with fake_device(fake_connection(attendance=logs)):
            response = self.client.get(self.url('attendance-logs') + '?startDate=2026-03-02&endDate=2026-03-02')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['dateRange'], {'start': '2026-03-02', 'end': '2026-03-02'})
        self.assertEqual(response.data['created'], 1)

    def test_reversed_date_range_is_rejected(self):
        response = self.client.post(
            self.url('sync-attendance'),
            {'startDate': '2026-03-05', 'endDate': '2026-03-01'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('endDate', response.data)

    @patch('zk_gateway.client.time.sleep')
    def test_sync_timeout_returns_gateway_timeout_with_guidance(self, mock_sleep):
        conn = fake_connection()
        conn.get_attendance.side_effect = TimeoutError('timed out')

        with fake_device(conn):
            response = self.client.post(self.url('sync-attendance'))

        self.assertEqual(response.status_code, status.HTTP_504_GATEWAY_TIMEOUT)
        self.assertEqual(response.data['error'], 'DeviceTimeoutError')
        self.assertIn('clear logs first', response.data['detail'])

    def test_sync_unreachable_device_returns_bad_gateway(self):
        with fake_device(connect_error=OSError('no route to host')):
            response = self.client.post(self.url('sync-attendance'))

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['error'], 'DeviceConnectionError')

    @patch('zk_gateway.client.time.sleep')
    def test_sync_dropped_connection_returns_bad_gateway(self, mock_sleep):
        conn = fake_connection()
        conn.get_attendance.side_effect = ConnectionResetError('peer reset')

        with fake_device(conn):
            response = self.client.post(self.url('sync-attendance'))

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['error'], 'DeviceConnectionError')
        self.assertIn('peer reset', response.data['detail'])

    def test_sync_users_dropped_connection_returns_bad_gateway(self):
        conn = fake_connection()
        conn.get_users.side_effect = BrokenPipeError('broken pipe')

        with fake_device(conn):
            response = self.client.post(self.url('sync-users'))

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    def test_connection_check(self):
        with fake_device(fake_connection()):
            ok = self.client.post(self.url('test'))
        with fake_device(connect_error=OSError('unreachable')):
            failed = self.client.post(self.url('test'))

        self.assertTrue(ok.data['connected'])
        self.assertEqual(ok.data['message'], 'Device connection successful')
        self.assertFalse(failed.data['connected'])

    def test_sync_users_maps_by_name(self):
        other = Member.objects.create(tenant=self.tenant, name='Omar Ali')
        users = [
            {'uid': 1, 'userId': '1', 'name': 'Sara Khan'},
            {'uid': 2, 'userId': '2', 'name': '  omar   ALI '},
            {'uid': 3, 'userId': '3', 'name': 'Visitor'},
        ]

        with fake_device(fake_connection(users=users)):
            response = self.client.post(self.url('sync-users'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['mapped'], 2)
        self.assertEqual(response.data['unmappedCount'], 1)
        self.assertEqual(response.data['unmappedDeviceUsers'][0]['userId'], '3')
        mapping = DeviceUserMapping.objects.get(device=self.device, device_user_id='2')
        self.assertEqual(mapping.member, other)

    def test_clear_logs(self):
        conn = fake_connection()
        with fake_device(conn):
            response = self.client.post(self.url('clear-logs'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['cleared'])
        conn.clear_attendance.assert_called_once()

    def test_clear_logs_refused(self):
        conn = fake_connection()
        conn.clear_attendance.side_effect = ZKErrorResponse('refused')
        with fake_device(conn):
            response = self.client.post(self.url('clear-logs'))

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertFalse(response.data['cleared'])

    def test_read_and_set_device_time(self):
        conn = fake_connection()
        with fake_device(conn):
            read = self.client.get(self.url('time'))
            written = self.client.put(self.url('time'), {'time': '2026-03-02T09:00:00Z'}, format='json')

        self.assertEqual(read.data['time'], '2026-03-02T08:00:00')
        self.assertEqual(written.status_code, status.HTTP_200_OK)
        conn.set_time.assert_called_once_with(datetime(2026, 3, 2, 9, 0))

    def test_unmapped_members(self):
        Member.objects.create(tenant=self.tenant, name='Omar Ali')
        inactive = Member.objects.create(tenant=self.tenant, name='Zed')
        DeviceUserMapping.objects.create(device=self.device, member=inactive, device_user_id='9', is_active=False)

        response = self.client.get(self.url('unmapped-members'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['name'] for m in response.data['unmappedMembers']], ['Omar Ali', 'Zed'])
        self.assertEqual(response.data['totalMembers'], 3)
        self.assertEqual(response.data['mappedMembers'], 1)
