from django.core.management.base import BaseCommand, CommandError

from tenants.models import Tenant
from zk_gateway.services.auto_checkout import close_incomplete_sessions


class Command(BaseCommand):
    help = "Close past attendance records that have a check-in but no check-out"

    def add_arguments(self, parser):
        parser.add_argument("--tenant", help="Tenant code (default: every tenant)")

    def handle(self, *args, **options):
        tenant_id = None
        tenant_code = (options.get("tenant") or "").strip()
        if tenant_code:
            tenant = Tenant.objects.filter(code__iexact=tenant_code).first()
            if tenant is None:
                raise CommandError(f"Unknown tenant '{tenant_code}'")
            tenant_id = tenant.id

        closed = close_incomplete_sessions(tenant_id=tenant_id)
        self.stdout.write(self.style.SUCCESS(f"Closed {closed} open attendance sessions"))
