from django.db import migrations, models
import django.db.models.deletion

import devices.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
        ("members", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Device",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(blank=True, default="", max_length=255)),
                ("ip_address", models.GenericIPAddressField()),
                ("port", models.PositiveIntegerField(default=devices.models.default_device_port)),
                ("serial_number", models.CharField(blank=True, default="", max_length=64)),
                ("password", models.PositiveIntegerField(default=0)),
                ("sync_interval", models.PositiveIntegerField(default=300)),
                ("last_sync_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="devices",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["tenant", "serial_number"], name="idx_device_tenant_sn")],
                "constraints": [
                    models.UniqueConstraint(fields=("tenant", "ip_address", "port"), name="uq_device_tenant_address"),
                ],
            },
        ),
        migrations.CreateModel(
            name="DeviceUserMapping",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("device_user_id", models.CharField(max_length=64)),
                ("device_user_name", models.CharField(blank=True, default="", max_length=255)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "device",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="user_mappings",
                        to="devices.device",
                    ),
                ),
                (
                    "member",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="device_mappings",
                        to="members.member",
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["device", "is_active"], name="idx_mapping_device_active")],
                "constraints": [
                    models.UniqueConstraint(fields=("device", "device_user_id"), name="uq_device_user_mapping"),
                ],
            },
        ),
    ]
