from django.urls import path, include
from rest_framework.routers import DefaultRouter
from tenants.views import TenantViewSet
from members.views import MemberViewSet
from devices.views import DeviceUserMappingViewSet, DeviceViewSet
from attendance.views import AttendanceRecordViewSet

from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

router = DefaultRouter()
router.register(r'tenants', TenantViewSet)
router.register(r'members', MemberViewSet)
router.register(r'devices', DeviceViewSet)
router.register(r'device-mappings', DeviceUserMappingViewSet)
router.register(r'attendance', AttendanceRecordViewSet)

urlpatterns = [
    path('auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('', include('zk_gateway.urls')),
    path('', include(router.urls)),
]
