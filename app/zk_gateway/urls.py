from django.urls import path

from zk_gateway.views import (
    clear_device_logs,
    device_time,
    sync_attendance,
    sync_users,
    test_device_connection,
    unmapped_members,
)

urlpatterns = [
    path("devices/<int:device_id>/sync-attendance", sync_attendance, name="zk-sync-attendance"),
    path("devices/<int:device_id>/attendance-logs", sync_attendance, name="zk-attendance-logs"),
    path("devices/<int:device_id>/test", test_device_connection, name="zk-test-connection"),
    path("devices/<int:device_id>/sync-users", sync_users, name="zk-sync-users"),
    path("devices/<int:device_id>/clear-logs", clear_device_logs, name="zk-clear-logs"),
    path("devices/<int:device_id>/time", device_time, name="zk-device-time"),
    path("devices/<int:device_id>/unmapped-members", unmapped_members, name="zk-unmapped-members"),
]
