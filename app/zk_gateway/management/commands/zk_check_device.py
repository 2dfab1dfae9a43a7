from django.core.management.base import BaseCommand, CommandError

from devices.models import Device
from zk_gateway.client import ZKDeviceClient
from zk_gateway.exceptions import DeviceConnectionError


class Command(BaseCommand):
    help = "Check that a configured punch clock answers and report its serial number and clock"

    def add_arguments(self, parser):
        parser.add_argument("--device", type=int, required=True, help="Device id")

    def handle(self, *args, **options):
        device = Device.objects.select_related("tenant").filter(pk=options["device"]).first()
        if device is None:
            raise CommandError(f"Device {options['device']} not found")

        try:
            with ZKDeviceClient.for_device(device) as client:
                serial = client.get_serial_number()
                device_time = client.get_time()
        except DeviceConnectionError as exc:
            raise CommandError(str(exc)) from exc

        if serial and serial != device.serial_number:
            device.serial_number = serial
            device.save(update_fields=["serial_number", "updated_at"])

        self.stdout.write(
            self.style.SUCCESS(
                "Communication OK "
                f"tenant={device.tenant.code} address={device.ip_address}:{device.port} "
                f"serial={serial or '-'} time={device_time.isoformat() if device_time else '-'}"
            )
        )
