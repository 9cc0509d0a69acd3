"""
Common model infrastructure for the Subscription Manager
Timestamps and soft deletes shared by every app.
"""

from __future__ import annotations

from typing import Any

from django.db import models
from django.db.models.query import QuerySet
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

# ===============================================================================
# TIMESTAMPS
# ===============================================================================


class TimestampedModel(models.Model):
    """Abstract model with creation and modification timestamps"""

    created_at = models.DateTimeField(default=timezone.now, editable=False, verbose_name=_("Created at"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Updated at"))

    class Meta:
        abstract = True


# ===============================================================================
# SOFT DELETE INFRASTRUCTURE
# ===============================================================================


class SoftDeleteQuerySet(models.QuerySet[Any]):
    """QuerySet aware of the deleted_at marker"""

    def alive(self) -> QuerySet[Any]:
        return self.filter(deleted_at__isnull=True)

    # Only meaningful on an unfiltered queryset; kept off the default manager
    alive.queryset_only = True  # type: ignore[attr-defined]

    def dead(self) -> QuerySet[Any]:
        return self.filter(deleted_at__isnull=False)

    dead.queryset_only = True  # type: ignore[attr-defined]


class SoftDeleteManager(models.Manager.from_queryset(SoftDeleteQuerySet)):  # type: ignore[misc]
    """Manager for soft delete models - only shows non-deleted records by default"""

    def get_queryset(self) -> QuerySet[Any]:
        return super().get_queryset().alive()

    def deleted_only(self) -> QuerySet[Any]:
        """Only show soft-deleted records"""
        return super().get_queryset().dead()


class SoftDeleteModel(models.Model):
    """
    Abstract model with soft delete capabilities.

    Marking and unmarking go through a queryset update so that neither
    triggers the model's save() path.
    """

    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True, verbose_name=_("Deleted at"))

    all_objects = models.Manager()  # Shows all records including deleted
    objects = SoftDeleteManager()

    class Meta:
        abstract = True

    def soft_delete(self) -> None:
        """Soft delete this record"""
        self.deleted_at = timezone.now()
        type(self).all_objects.filter(pk=self.pk).update(deleted_at=self.deleted_at)

    def restore(self) -> None:
        """Restore soft-deleted record"""
        self.deleted_at = None
        type(self).all_objects.filter(pk=self.pk).update(deleted_at=None)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
