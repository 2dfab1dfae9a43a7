from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase

from devices.models import Device, DeviceUserMapping
from members.models import Member
from tenants.models import Tenant


User = get_user_model()


class DeviceTenantScopeTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='alice', password='pwd12345')
        self.tenant = Tenant.objects.create(name='Ironworks', code='ironworks')
        self.other_tenant = Tenant.objects.create(name='Flexzone', code='flexzone')
        self.client.force_authenticate(self.user)
        self.client.credentials(HTTP_X_TENANT_CODE='ironworks')

    def test_lists_only_current_tenant_devices(self):
        Device.objects.create(tenant=self.tenant, name='Front desk', ip_address='10.0.0.5')
        Device.objects.create(tenant=self.other_tenant, name='Other gym', ip_address='10.0.0.6')

        response = self.client.get('/api/devices/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['name'], 'Front desk')
        self.assertNotIn('password', response.data[0])

    def test_create_device_uses_default_port(self):
        payload = {'name': 'Front desk', 'ip_address': '10.0.0.5', 'password': 1234}

        response = self.client.post('/api/devices/', payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        device = Device.objects.get(name='Front desk')
        self.assertEqual(device.tenant, self.tenant)
        self.assertEqual(device.port, 4370)
        self.assertEqual(device.password, 1234)

    def test_duplicate_address_is_rejected(self):
        Device.objects.create(tenant=self.tenant, ip_address='10.0.0.5', port=4370)

        response = self.client.post('/api/devices/', {'ip_address': '10.0.0.5', 'port': 4370}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_same_address_is_allowed_for_another_tenant(self):
        Device.objects.create(tenant=self.other_tenant, ip_address='10.0.0.5', port=4370)

        response = self.client.post('/api/devices/', {'ip_address': '10.0.0.5', 'port': 4370}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_port_must_be_valid(self):
        response = self.client.post('/api/devices/', {'ip_address': '10.0.0.5', 'port': 70000}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('port', response.data)

    def test_cannot_read_other_tenant_device(self):
        device = Device.objects.create(tenant=self.other_tenant, ip_address='10.0.0.6')

        response = self.client.get(f'/api/devices/{device.pk}/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class DeviceUserMappingTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='alice', password='pwd12345')
        self.tenant = Tenant.objects.create(name='Ironworks', code='ironworks')
        self.other_tenant = Tenant.objects.create(name='Flexzone', code='flexzone')
        self.device = Device.objects.create(tenant=self.tenant, ip_address='10.0.0.5')
        self.member = Member.objects.create(tenant=self.tenant, name='Sara Khan')
        self.client.force_authenticate(self.user)
        self.client.credentials(HTTP_X_TENANT_CODE='ironworks')

    def test_create_mapping(self):
        payload = {'device': self.device.pk, 'member': self.member.pk, 'device_user_id': ' 17 '}

        response = self.client.post('/api/device-mappings/', payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        mapping = DeviceUserMapping.objects.get()
        self.assertEqual(mapping.device_user_id, '17')
        self.assertTrue(mapping.is_active)
        self.assertEqual(response.data['member_detail']['name'], 'Sara Khan')

    def test_member_of_another_tenant_is_rejected(self):
        stranger = Member.objects.create(tenant=self.other_tenant, name='Stranger')
        payload = {'device': self.device.pk, 'member': stranger.pk, 'device_user_id': '17'}

        response = self.client.post('/api/device-mappings/', payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('member', response.data)

    def test_duplicate_device_user_is_rejected(self):
        DeviceUserMapping.objects.create(device=self.device, member=self.member, device_user_id='17')
        other = Member.objects.create(tenant=self.tenant, name='Omar Ali')

        response = self.client.post(
            '/api/device-mappings/',
            {'device': self.device.pk, 'member': other.pk, 'device_user_id': '17'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_by_active_flag(self):
        DeviceUserMapping.objects.create(device=self.device, member=self.member, device_user_id='17')
        other = Member.objects.create(tenant=self.tenant, name='Omar Ali')
        DeviceUserMapping.objects.create(device=self.device, member=other, device_user_id='18', is_active=False)

        response = self.client.get('/api/device-mappings/?is_active=false')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['device_user_id'] for item in response.data], ['18'])
