"""Tests for lifecycle status classification."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from customer_intelligence.foundation.status import (
    CustomerStatus,
    classify,
    days_between,
    last_activity,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_customer(**overrides):
    fields = {
        "is_blacklisted": False,
        "is_vip": False,
        "last_order_at": None,
        "last_visit_date": None,
        "created_at": None,
        "orders_count": 0,
        "total_visits": 0,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestPrecedence:
    def test_blacklist_beats_vip(self):
        customer = make_customer(is_blacklisted=True, is_vip=True, last_order_at=NOW)
        assert classify(customer, NOW) is CustomerStatus.BLACKLISTED

    def test_vip_beats_recency(self):
        customer = make_customer(is_vip=True, last_order_at=NOW - timedelta(days=400))
        assert classify(customer, NOW) is CustomerStatus.VIP

    def test_no_activity_is_prospect(self):
        assert classify(make_customer(), NOW) is CustomerStatus.PROSPECT


@pytest.mark.parametrize(
    "days, expected",
    [
        (0, CustomerStatus.ACTIVE),
        (14, CustomerStatus.ACTIVE),
        (15, CustomerStatus.ENGAGED),
        (45, CustomerStatus.ENGAGED),
        (46, CustomerStatus.AT_RISK),
        (120, CustomerStatus.AT_RISK),
        (121, CustomerStatus.INACTIVE),
    ],
)
def test_recency_boundaries(days, expected):
    customer = make_customer(last_order_at=NOW - timedelta(days=days), orders_count=1)
    assert classify(customer, NOW) is expected


def test_partial_days_are_floored():
    customer = make_customer(last_order_at=NOW - timedelta(days=14, hours=23), orders_count=1)
    assert classify(customer, NOW) is CustomerStatus.ACTIVE


def test_old_signup_without_orders_or_visits_is_prospect():
    customer = make_customer(created_at=NOW - timedelta(days=300))
    assert classify(customer, NOW) is CustomerStatus.PROSPECT


def test_old_visit_only_is_inactive():
    customer = make_customer(last_visit_date=NOW - timedelta(days=300), total_visits=2)
    assert classify(customer, NOW) is CustomerStatus.INACTIVE


def test_last_activity_fallback_chain():
    visit = NOW - timedelta(days=3)
    joined = NOW - timedelta(days=30)
    assert last_activity(make_customer(last_visit_date=visit, created_at=joined)) == visit
    assert last_activity(make_customer(last_order_at="garbage", created_at=joined)) == joined
    assert last_activity(make_customer()) is None


def test_classification_accepts_iso_strings():
    customer = make_customer(last_order_at="2024-05-25T12:00:00Z", orders_count=1)
    assert classify(customer, NOW) is CustomerStatus.ACTIVE


def test_days_between():
    assert days_between(None, NOW) is None
    assert days_between("2024-05-31T13:00:00Z", NOW) == 0
    assert days_between("2024-05-01T12:00:00Z", NOW) == 31


def test_status_serialises_as_value():
    assert str(CustomerStatus.AT_RISK) == "at-risk"
    assert CustomerStatus("at-risk") is CustomerStatus.AT_RISK
    assert CustomerStatus.VIP == "vip"
