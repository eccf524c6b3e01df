from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from apps.catalog.models import Product
from apps.clients.models import Client
from apps.orders.models import DeliveryMethod, Order, PaymentMethod
from apps.orders.services import approve_payment, replace_lines
from apps.production import engine
from apps.production.models import JobPriority, JobType

PRODUCTS = (
    ("Premium Cotton T-Shirt", "T-Shirts", "25.99", 150),
    ("Fleece Hoodie", "Hoodies", "45.99", 75),
    ("Sports Jersey", "Jerseys", "35.99", 8),
    ("Canvas Tote Bag", "Bags", "12.99", 200),
    ("Vintage Wash T-Shirt", "T-Shirts", "28.99", 0),
)

CLIENTS = (
    ("ABC Corporation", "contact@abc-corp.com", "+60123456789", "Lot 123, Jalan Teknologi, Cyberjaya, Selangor"),
    ("XYZ Solutions", "info@xyz-solutions.com", "+60198765432", "Unit 45, Plaza Business, Kuala Lumpur"),
    ("Tech Startup Inc", "hello@techstartup.com", "+60187654321", "2nd Floor, Innovation Hub, Petaling Jaya"),
)


class Command(BaseCommand):
    help = "Load demo catalog, clients, orders and jobs (one job mid-production)"

    def handle(self, *args, **options):
        call_command("seed_users", stdout=self.stdout)
        if Order.objects.exists():
            self.stdout.write(self.style.WARNING("Orders already exist; demo data not loaded."))
            return

        User = get_user_model()
        admin = User.objects.get(username="superadmin")
        today = timezone.localdate()

        with transaction.atomic():
            products = {}
            for name, category, price, stock in PRODUCTS:
                products[name], _ = Product.objects.get_or_create(
                    name=name, defaults={"category": category, "base_price": Decimal(price), "stock": stock}
                )
            clients = []
            for name, email, phone, address in CLIENTS:
                client, _ = Client.objects.get_or_create(
                    name=name, defaults={"email": email, "phone": phone, "billing_address": address}
                )
                clients.append(client)

            running = self._order(
                admin,
                clients[0],
                "Company Event Shirts",
                [(products["Premium Cotton T-Shirt"], 100)],
                design_deposit="500.00",
                production_deposit="1000.00",
                production_due_date=today + timedelta(days=2),
                delivery_method=DeliveryMethod.SHIPPING,
            )
            approve_payment(running, "design", actor=admin)
            approve_payment(running, "production", actor=admin)
            job = engine.create_job_with_phases(
                order=running, created_by=admin, job_type=JobType.PRINT, priority=JobPriority.HIGH,
                due_date=today + timedelta(days=2),
            )
            phases = list(job.phases.order_by("order"))
            for phase in phases[:2]:
                engine.start_phase(job, phase.id, admin)
                engine.end_phase(job, phase.id, admin)
            engine.start_phase(job, phases[2].id, admin)

            waiting = self._order(
                admin,
                clients[1],
                "Team Hoodies",
                [(products["Fleece Hoodie"], 40), (products["Canvas Tote Bag"], 40)],
                design_deposit="300.00",
                design_due_date=today + timedelta(days=4),
                production_due_date=today + timedelta(days=10),
            )
            engine.create_job_with_phases(order=waiting, created_by=admin, job_type=JobType.DESIGN)
            engine.create_job_with_phases(order=waiting, created_by=admin, job_type=JobType.PRINT)

            self._order(
                admin,
                clients[2],
                "Launch Jerseys",
                [(products["Sports Jersey"], 25)],
                design_due_date=today - timedelta(days=1),
            )

        self.stdout.write(self.style.SUCCESS("Demo data loaded."))

    def _order(self, actor, client, job_name, items, **fields):
        amounts = {
            key: Decimal(value) for key, value in fields.items() if key in ("design_deposit", "production_deposit")
        }
        fields.update(amounts)
        order = Order.objects.create(
            client=client,
            job_name=job_name,
            created_by=actor,
            payment_method=PaymentMethod.DEPOSIT_DESIGN,
            **fields,
        )
        replace_lines(order, [{"product": product, "quantity": quantity} for product, quantity in items])
        return order
