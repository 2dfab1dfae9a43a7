from django.db import models

from members.models import Member
from tenants.models import Tenant


class AttendanceRecord(models.Model):
    STATUS_PRESENT = "PRESENT"
    STATUS_ABSENT = "ABSENT"
    STATUS_LATE = "LATE"
    STATUS_CHOICES = [
        (STATUS_PRESENT, "Present"),
        (STATUS_ABSENT, "Absent"),
        (STATUS_LATE, "Late"),
    ]

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="attendance_records")
    member = models.ForeignKey(Member, on_delete=models.CASCADE, related_name="attendance_records")
    date = models.DateField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PRESENT)
    check_in_time = models.DateTimeField(null=True, blank=True)
    check_out_time = models.DateTimeField(null=True, blank=True)
    device_user_id = models.CharField(max_length=64, blank=True, default="")
    device_serial_number = models.CharField(max_length=64, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["tenant", "member", "date"], name="uq_attendance_tenant_member_date"),
        ]
        indexes = [
            models.Index(fields=["tenant", "date"], name="idx_attendance_tenant_date"),
            models.Index(fields=["member", "check_in_time"], name="idx_attendance_member_in"),
        ]

    def __str__(self):
        return f"{self.member_id}@{self.date}"
