"""
Management command to list all plans with their features.
"""

from django.core.management.base import BaseCommand

from apps.subscriptions.models import Plan


class Command(BaseCommand):
    help = 'List all plans with their features'

    def handle(self, *args, **options):
        """Print a name / features table ordered by plan name"""

        rows = [
            (plan.name, ", ".join(plan.feature_codes()))
            for plan in Plan.objects.order_by('name').prefetch_related('features')
        ]

        if not rows:
            self.stdout.write(self.style.WARNING("⚠️ No plans defined"))
            return

        self._write_table(('name', 'features'), rows)

    def _write_table(self, headers, rows):
        widths = [max(len(str(value)) for value in column) for column in zip(headers, *rows)]
        separator = "+" + "+".join("-" * (width + 2) for width in widths) + "+"

        self.stdout.write(separator)
        self.stdout.write(self._format_row(headers, widths))
        self.stdout.write(separator)
        for row in rows:
            self.stdout.write(self._format_row(row, widths))
        self.stdout.write(separator)

    @staticmethod
    def _format_row(values, widths):
        return "| " + " | ".join(str(value).ljust(width) for value, width in zip(values, widths)) + " |"
