from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase

from members.models import Member
from tenants.models import Tenant


User = get_user_model()


class MemberApiTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='alice', password='pwd12345')
        self.tenant = Tenant.objects.create(name='Ironworks', code='ironworks')
        self.other_tenant = Tenant.objects.create(name='Flexzone', code='flexzone')
        self.client.force_authenticate(self.user)
        self.client.credentials(HTTP_X_TENANT_CODE='ironworks')

    def test_create_member_in_request_tenant(self):
        response = self.client.post('/api/members/', {'name': 'Sara Khan', 'email': 'sara@example.com'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Member.objects.get().tenant, self.tenant)

    def test_search_stays_inside_tenant(self):
        Member.objects.create(tenant=self.tenant, name='Sara Khan')
        Member.objects.create(tenant=self.tenant, name='Omar Ali')
        Member.objects.create(tenant=self.other_tenant, name='Sara Malik')

        response = self.client.get('/api/members/?search=sara')

        self.assertEqual([item['name'] for item in response.data], ['Sara Khan'])

    def test_tenant_code_is_case_insensitive(self):
        self.client.credentials(HTTP_X_TENANT_CODE='IronWorks')

        response = self.client.get('/api/members/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
