"""
Create Feature, Plan and Subscription models.

Subscriptions store only the timestamps their lifecycle state is derived
from (trial_ends_at, ends_at, created_at) plus the ISO-8601 billing period.
"""

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import apps.subscriptions.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("contenttypes", "0002_remove_content_type_name"),
    ]

    operations = [
        migrations.CreateModel(
            name="Feature",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now, editable=False, verbose_name="Created at"),
                ),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
                (
                    "code",
                    models.SlugField(
                        help_text="Stable identifier, e.g. 'api-access'",
                        max_length=100,
                        unique=True,
                    ),
                ),
                ("name", models.CharField(blank=True, max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "is_metered",
                    models.BooleanField(default=False, help_text="Usage of this feature is counted"),
                ),
            ],
            options={
                "verbose_name": "Feature",
                "verbose_name_plural": "Features",
                "db_table": "subscription_features",
                "ordering": ("code",),
            },
        ),
        migrations.CreateModel(
            name="Plan",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now, editable=False, verbose_name="Created at"),
                ),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
                ("name", models.CharField(max_length=255, unique=True)),
                (
                    "period",
                    models.CharField(
                        blank=True,
                        help_text="ISO-8601 duration such as P1M or P1Y; empty means infinite",
                        max_length=50,
                        null=True,
                        validators=[apps.subscriptions.validators.validate_period],
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                (
                    "features",
                    models.ManyToManyField(blank=True, related_name="plans", to="subscriptions.feature"),
                ),
            ],
            options={
                "verbose_name": "Plan",
                "verbose_name_plural": "Plans",
                "db_table": "subscription_plans",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="Subscription",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "deleted_at",
                    models.DateTimeField(blank=True, db_index=True, null=True, verbose_name="Deleted at"),
                ),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now, editable=False, verbose_name="Created at"),
                ),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
                ("subscribable_id", models.PositiveBigIntegerField(help_text="Primary key of the subscriber")),
                (
                    "features",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Feature codes granted, independent of later plan changes",
                    ),
                ),
                (
                    "period",
                    models.CharField(
                        blank=True,
                        help_text="ISO-8601 duration such as P1M or P1Y; empty means infinite",
                        max_length=50,
                        null=True,
                        validators=[apps.subscriptions.validators.validate_period],
                    ),
                ),
                ("trial_ends_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("ends_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                (
                    "plan",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="subscriptions",
                        to="subscriptions.plan",
                    ),
                ),
                (
                    "subscribable_type",
                    models.ForeignKey(
                        help_text="Model type of the subscriber",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="contenttypes.contenttype",
                    ),
                ),
            ],
            options={
                "verbose_name": "Subscription",
                "verbose_name_plural": "Subscriptions",
                "db_table": "subscriptions",
                "ordering": ("-created_at",),
                "indexes": [
                    models.Index(
                        fields=["subscribable_type", "subscribable_id"],
                        name="idx_subscription_subscribable",
                    )
                ],
            },
        ),
    ]
