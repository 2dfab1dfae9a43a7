from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date

from devices.models import Device
from zk_gateway.exceptions import ZKGatewayError
from zk_gateway.services.attendance_sync import sync_device_attendance


def _date_option(value, name):
    if not value:
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise CommandError(f"--{name} must be a YYYY-MM-DD date")
    return parsed


class Command(BaseCommand):
    help = "Pull punch logs from ZKTeco clocks and reconcile attendance records"

    def add_arguments(self, parser):
        parser.add_argument("--device", type=int, action="append", dest="devices", help="Device id (repeatable)")
        parser.add_argument("--tenant", help="Only devices of this tenant code")
        parser.add_argument("--full", action="store_true", help="Wipe the tenant's records and reprocess every punch")
        parser.add_argument("--start-date")
        parser.add_argument("--end-date")

    def handle(self, *args, **options):
        start_date = _date_option(options.get("start_date"), "start-date")
        end_date = _date_option(options.get("end_date"), "end-date")

        devices = Device.objects.select_related("tenant").order_by("id")
        if options.get("devices"):
            devices = devices.filter(id__in=options["devices"])
        if options.get("tenant"):
            devices = devices.filter(tenant__code__iexact=options["tenant"].strip())
        if not devices.exists():
            raise CommandError("No device matches the given filters")

        failures = 0
        for device in devices:
            try:
                result = sync_device_attendance(
                    device,
                    start_date=start_date,
                    end_date=end_date,
                    full_sync=options["full"],
                )
            except ZKGatewayError as exc:
                failures += 1
                self.stderr.write(self.style.ERROR(f"Device {device.pk} ({device}): {exc}"))
                continue

            self.stdout.write(
                self.style.SUCCESS(
                    f"Device {device.pk} ({device}): synced={result['synced']} "
                    f"created={result['created']} updated={result['updated']} "
                    f"errors={result['errors']} deleted={result['deleted']}"
                )
            )

        if failures:
            raise CommandError(f"{failures} device(s) failed to sync")
