"""
Management command to print the billing circles of a subscription.
"""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from apps.subscriptions.exceptions import SubscriptionError
from apps.subscriptions.models import Subscription


class Command(BaseCommand):
    help = 'Print the billing circles of a subscription'

    def add_arguments(self, parser):
        parser.add_argument('subscription_id', type=int, help='Subscription primary key')
        parser.add_argument(
            '--now',
            help='Evaluate as of this ISO-8601 instant instead of the current time',
        )

    def handle(self, *args, **options):
        now = self._parse_now(options.get('now'))

        try:
            subscription = Subscription.all_objects.get(pk=options['subscription_id'])
        except Subscription.DoesNotExist as e:
            raise CommandError(f"Subscription {options['subscription_id']} does not exist") from e

        try:
            circles = subscription.circles(now=now)
        except SubscriptionError as e:
            raise CommandError(str(e)) from e

        self.stdout.write(
            f"🔁 Subscription #{subscription.pk} ({subscription.state(now)}), "
            f"period {subscription.period or 'infinite'}"
        )
        for circle in circles:
            marker = "  ← current" if circle.is_current(now) else ""
            self.stdout.write(f"  {circle}{marker}")

    @staticmethod
    def _parse_now(value):
        if not value:
            return timezone.now()
        parsed = parse_datetime(value)
        if parsed is None:
            raise CommandError(f"Invalid --now value: {value}")
        if timezone.is_naive(parsed):
            parsed = timezone.make_aware(parsed)
        return parsed
