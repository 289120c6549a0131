"""
Dashboard Data Service
======================
fetch_dashboard_metrics():    revenue_metrics + profiles count -> DashboardMetrics
fetch_subscription_details(): subscriptions joined with plans  -> Subscription
fetch_users():                profiles                         -> [UserProfile]

Metrics and users never raise: any database failure degrades to the
placeholder/empty result and is only logged. Billing distinguishes a soft
fallback (free tier) from a hard failure (None).
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, get_args
from urllib.parse import quote_plus

from postgrest.exceptions import APIError
from pydantic import ValidationError

from formatting import format_date, month_label
from models import (
    DashboardMetrics, MetricPoint, Plan, PlanInterval, Subscription, UserProfile,
    UserRole, UserStatus,
)

logger = logging.getLogger(__name__)

HISTORY_WINDOW = 6
LIFETIME_PLAN_PRICE = 297

PLACEHOLDER_LABELS = ("Jan", "Fev", "Mar", "Abr", "Mai", "Jun")


def _choice(value: Any, allowed, default: str) -> str:
    """Match a stored enum value case-insensitively; unknown values fall back to default."""
    if not value:
        return default
    for option in get_args(allowed):
        if str(value).lower() == option.lower():
            return option
    logger.warning(f"Unknown value {value!r}, using {default!r}")
    return default


def empty_metrics() -> DashboardMetrics:
    return DashboardMetrics(
        total_revenue=0,
        revenue_growth=0,
        average_ticket=0,
        ticket_growth=0,
        new_customers=0,
        customer_growth=0,
        revenue_history=[MetricPoint(date=label, value=0) for label in PLACEHOLDER_LABELS],
    )


def free_tier_subscription(today: Optional[date] = None) -> Subscription:
    return Subscription(
        status="inactive",
        plan=Plan(id="free_tier", name="Free Plan", price=0, interval="month"),
        next_billing_date=format_date(today or date.today()),
    )


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def derive_metrics(rows: list[dict], customer_count: Optional[int]) -> DashboardMetrics:
    """Turn ascending (date, value) rows into the dashboard snapshot."""
    if not rows:
        return empty_metrics()

    history = [
        MetricPoint(date=month_label(r.get("date")), value=float(r.get("value") or 0))
        for r in rows
    ]

    current = history[-1].value
    previous = history[-2].value if len(history) >= 2 else 0

    revenue_growth = 0 if previous == 0 else round((current - previous) / previous * 100, 1)

    customers = customer_count or 0
    average_ticket = round(current / customers, 2) if customers > 0 else 0

    # ticket/customer growth are not computed from history yet
    return DashboardMetrics(
        total_revenue=current,
        revenue_growth=revenue_growth,
        average_ticket=average_ticket,
        ticket_growth=0,
        new_customers=customers,
        customer_growth=0,
        revenue_history=history,
    )


async def fetch_dashboard_metrics(supabase, tenant_id: str) -> DashboardMetrics:
    if supabase is None:
        logger.warning("Supabase not configured.")
        return empty_metrics()

    try:
        revenue = (
            supabase.table("revenue_metrics")
            .select("*")
            .eq("tenant_id", tenant_id)
            .order("date", desc=False)
            .limit(HISTORY_WINDOW)
            .execute()
        )
        rows = revenue.data or []
        if not rows:
            return empty_metrics()

        # profiles double as the customer base in this model
        customers = (
            supabase.table("profiles")
            .select("*", count="exact", head=True)
            .eq("tenant_id", tenant_id)
            .execute()
        )
        return derive_metrics(rows, customers.count)

    except Exception as e:
        logger.error(f"Error fetching metrics: {e}")
        return empty_metrics()


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------

def resolve_subscription(row: Optional[dict], today: Optional[date] = None) -> Subscription:
    """Map an active subscription row (joined with `plans`) to a Subscription."""
    if not row:
        return free_tier_subscription(today)

    plan_data = row.get("plans") or {}
    name = plan_data.get("name")

    price = plan_data.get("price") or 0
    if (name or "").lower() == "lifetime":
        price = LIFETIME_PLAN_PRICE

    return Subscription(
        status=row.get("status"),
        plan=Plan(
            id=plan_data.get("id") or "unknown",
            name=name or "Custom Plan",
            price=price,
            interval=_choice(plan_data.get("interval"), PlanInterval, "month"),
        ),
        next_billing_date=format_date(row.get("current_period_end")),
    )


async def fetch_subscription_details(supabase, tenant_id: str) -> Optional[Subscription]:
    if supabase is None:
        return None

    try:
        try:
            result = (
                supabase.table("subscriptions")
                .select("*, plans(id, name, price, interval)")
                .eq("tenant_id", tenant_id)
                .eq("status", "active")
                .maybe_single()
                .execute()
            )
        except APIError as e:
            logger.warning(f"Subscription lookup failed, using free tier: {e}")
            return free_tier_subscription()

        # maybe_single() yields no response at all when nothing matches
        row = result.data if result is not None else None
        return resolve_subscription(row)

    except Exception as e:
        logger.error(f"Billing fetch error: {e}")
        return None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def _profile_to_user(profile: dict[str, Any]) -> UserProfile:
    full_name = profile.get("full_name")
    return UserProfile(
        id=profile["id"],
        name=full_name or "Unnamed User",
        email=profile.get("email"),
        role=_choice(profile.get("role"), UserRole, "user"),
        tenant_id=profile.get("tenant_id"),
        status=_choice(profile.get("status"), UserStatus, "Active"),
        last_active=format_date(profile.get("last_active")),
        avatar=profile.get("avatar_url")
        or f"https://ui-avatars.com/api/?name={quote_plus(full_name or '')}&background=random",
    )


async def fetch_users(supabase, tenant_id: str) -> list[UserProfile]:
    if supabase is None:
        return []

    try:
        result = (
            supabase.table("profiles")
            .select("*")
            .eq("tenant_id", tenant_id)
            .execute()
        )
    except Exception as e:
        logger.error(f"Error fetching users: {e}")
        return []

    users = []
    for profile in result.data or []:
        try:
            users.append(_profile_to_user(profile))
        except (KeyError, ValidationError) as e:
            logger.warning(f"Skipping profile {profile.get('id')!r}: {e}")
    return users
