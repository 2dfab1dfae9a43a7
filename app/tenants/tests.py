from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase

from tenants.models import Tenant


User = get_user_model()


class TenantApiTests(APITestCase):
    def test_only_staff_can_manage_tenants(self):
        user = User.objects.create_user(username='alice', password='pwd12345')
        self.client.force_authenticate(user)

        response = self.client.get('/api/tenants/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_code_is_normalized(self):
        admin = User.objects.create_user(username='root', password='pwd12345', is_staff=True)
        self.client.force_authenticate(admin)

        response = self.client.post('/api/tenants/', {'name': 'Ironworks', 'code': 'IronWorks'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Tenant.objects.get().code, 'ironworks')


class TokenAuthTests(APITestCase):
    def test_obtain_token_and_call_api(self):
        User.objects.create_user(username='alice', password='pwd12345')
        Tenant.objects.create(name='Ironworks', code='ironworks')

        token = self.client.post('/api/auth/token/', {'username': 'alice', 'password': 'pwd12345'}, format='json')
        self.assertEqual(token.status_code, status.HTTP_200_OK)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.data['access']}", HTTP_X_TENANT_CODE='ironworks')
        response = self.client.get('/api/members/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
