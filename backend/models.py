"""Pydantic models for the dashboard domain.

Attributes are snake_case; the JSON wire names are camelCase
(totalRevenue, revenueHistory, nextBillingDate, ...) to match the web client.
"""
import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def generate_uuid():
    return str(uuid.uuid4())


def utc_now():
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============ Metrics ============

class MetricPoint(CamelModel):
    date: str
    value: float


class DashboardMetrics(CamelModel):
    total_revenue: float = 0
    revenue_growth: float = 0        # percent
    average_ticket: float = 0
    ticket_growth: float = 0         # percent
    new_customers: int = 0
    customer_growth: float = 0       # percent
    revenue_history: List[MetricPoint] = Field(min_length=1)


# ============ Billing ============

PlanInterval = Literal["month", "year", "one_time"]


class Plan(CamelModel):
    id: str
    name: str
    price: float
    interval: PlanInterval = "month"


class Subscription(CamelModel):
    status: str
    plan: Plan
    next_billing_date: str


# ============ Users ============

UserRole = Literal["user", "influencer", "admin"]
UserStatus = Literal["Active", "Inactive"]


class UserProfile(CamelModel):
    id: str
    name: str
    email: Optional[str] = None
    role: UserRole = "user"
    tenant_id: Optional[str] = None
    status: UserStatus = "Active"
    last_active: str = ""
    avatar: str = ""


# ============ Leads ============

class BusinessLead(CamelModel):
    id: str
    name: str
    address: str
    rating: Optional[float] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    status: Literal["new", "saved"] = "new"


class CityOption(CamelModel):
    value: str
    label: str


# ============ AI ============

class ChatMessage(CamelModel):
    id: str = Field(default_factory=generate_uuid)
    role: Literal["user", "model"]
    text: str
    timestamp: datetime = Field(default_factory=utc_now)


class AIAnalysisResponse(CamelModel):
    insight: str
    recommendation: str
    risk_level: Literal["low", "medium", "high"]


# ============ Settings ============

class DashboardSettings(CamelModel):
    company_name: str = "SaaSBuilder Inc."
    mfa_enabled: bool = True
    email_notifications: bool = True
