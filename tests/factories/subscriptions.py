# ===============================================================================
# TEST FACTORIES FOR SUBSCRIPTIONS
# ===============================================================================
from datetime import datetime, timezone as dt_timezone

from django.contrib.auth import get_user_model

from apps.subscriptions.models import Feature, Plan, Subscription

User = get_user_model()


def utc(year: int, month: int = 1, day: int = 1, hour: int = 0, minute: int = 0) -> datetime:
    """Timezone-aware UTC instant."""
    return datetime(year, month, day, hour, minute, tzinfo=dt_timezone.utc)


def create_subscriber(username: str = 'subscriber') -> User:
    """Create a user to own subscriptions."""
    return User.objects.create_user(username=username, email=f'{username}@example.com', password='testpass123')


def create_plan(name: str = 'Basic', period: str | None = 'P1M', feature_codes: tuple[str, ...] = ()) -> Plan:
    """Create a plan with the given features, creating missing features on the way."""
    plan = Plan.objects.create(name=name, period=period)
    for code in feature_codes:
        feature, _ = Feature.objects.get_or_create(code=code, defaults={'name': code.replace('-', ' ').title()})
        plan.features.add(feature)
    return plan


def create_subscription(subscriber: User, **kwargs) -> Subscription:
    """Create a subscription with sensible defaults (monthly, created 2024-01-01)."""
    defaults = {
        'subscribable': subscriber,
        'period': 'P1M',
        'created_at': utc(2024, 1, 1),
    }
    defaults.update(kwargs)
    subscription = Subscription(**defaults)
    subscription.save()
    return subscription
