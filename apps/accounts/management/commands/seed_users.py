from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from apps.accounts.identities import DEMO_IDENTITIES


class Command(BaseCommand):
    help = "Create the demo console identities with the shared console password"

    def handle(self, *args, **options):
        User = get_user_model()
        for identity in DEMO_IDENTITIES:
            defaults = {key: value for key, value in identity.items() if key != "username"}
            user, created = User.objects.update_or_create(username=identity["username"], defaults=defaults)
            user.set_password(settings.CONSOLE_SHARED_PASSWORD)
            user.save(update_fields=["password"])
            action = "created" if created else "updated"
            self.stdout.write(self.style.SUCCESS(f"{user.email}: {action}"))
