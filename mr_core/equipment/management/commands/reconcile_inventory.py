from django.core.management.base import BaseCommand

from mr_core.equipment.services import InventoryService


class Command(BaseCommand):
    help = "Recompute quantity_in_use on every pricing row from open equipment reservations."

    def handle(self, *args, **options):
        drift = InventoryService.reconcile()
        if not drift:
            self.stdout.write(self.style.SUCCESS("Inventory consistent."))
            return

        for row in drift:
            self.stdout.write(
                f"pricing {row['pricing_id']}: recorded={row['recorded']} expected={row['expected']}"
            )
        self.stdout.write(self.style.WARNING(f"Fixed {len(drift)} pricing row(s)."))
