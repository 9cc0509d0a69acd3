"""
Django admin configuration for subscription models.
"""

from typing import Any

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .lifecycle import STATES
from .models import Feature, Plan, Subscription

# ===============================================================================
# FEATURES & PLANS
# ===============================================================================

@admin.register(Feature)
class FeatureAdmin(admin.ModelAdmin):
    """Feature catalogue"""

    list_display = ['code', 'name', 'is_metered']
    list_filter = ['is_metered']
    search_fields = ['code', 'name']
    ordering = ['code']


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    """Plans and their feature bundles"""

    list_display = ['name', 'period', 'feature_list', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name']
    filter_horizontal = ['features']
    ordering = ['name']

    def feature_list(self, obj: Plan) -> str:
        return ", ".join(obj.feature_codes())
    feature_list.short_description = _('Features')


# ===============================================================================
# SUBSCRIPTION ADMIN
# ===============================================================================

class LifecycleStateFilter(admin.SimpleListFilter):
    """Filter by derived lifecycle state, using the same conditions as the model predicates"""

    title = _('lifecycle state')
    parameter_name = 'state'

    def lookups(self, request: HttpRequest, model_admin: Any) -> list[tuple[str, str]]:
        return [(name, name.replace('_', ' ').capitalize()) for name in STATES]

    def queryset(self, request: HttpRequest, queryset: QuerySet[Subscription]) -> QuerySet[Subscription] | None:
        condition = STATES.get(self.value() or '')
        if condition is None:
            return queryset
        return queryset.filter(condition.to_q(timezone.now()))


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    """Subscriptions with their derived state"""

    list_display = ['id', 'subscribable_type', 'subscribable_id', 'plan', 'period', 'state_label',
                    'trial_ends_at', 'ends_at', 'created_at']
    list_filter = [LifecycleStateFilter, 'plan']
    search_fields = ['subscribable_id']
    readonly_fields = ['created_at', 'updated_at', 'deleted_at']
    date_hierarchy = 'created_at'

    def state_label(self, obj: Subscription) -> str:
        return obj.state()
    state_label.short_description = _('State')
