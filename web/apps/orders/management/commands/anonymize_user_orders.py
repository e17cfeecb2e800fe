from django.core.management.base import BaseCommand

from apps.orders.providers import get_order_operations


class Command(BaseCommand):
    help = "Detach a removed user's orders by setting their owner to 'deleted-user'."

    def add_arguments(self, parser):
        parser.add_argument("user_id")

    def handle(self, *args, **options):
        count = get_order_operations().anonymize_user(options["user_id"])
        self.stdout.write(f"anonymized {count} order(s)")
