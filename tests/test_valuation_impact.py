from __future__ import annotations

from decimal import Decimal

from equitystek.domain.valuation_impact import (
    DEFAULT_ROI_FACTOR,
    creation_adjustment,
    maintenance_impact,
    roi_factor,
    update_adjustment,
)


def test_roi_table_and_default_factor():
    assert roi_factor("structural") == Decimal("1.1")
    assert roi_factor("renovation") == Decimal("1.2")
    assert roi_factor("landscaping") == Decimal("0.3")
    # categories outside the table fall back to the default
    assert roi_factor("flooring") == DEFAULT_ROI_FACTOR
    assert roi_factor("pool") == DEFAULT_ROI_FACTOR
    assert roi_factor(None) == DEFAULT_ROI_FACTOR


def test_impact_is_cost_times_factor_in_cents():
    assert maintenance_impact("plumbing", 2000) == Decimal("1600.00")
    assert maintenance_impact("electrical", "1234.56") == Decimal("1049.38")
    assert maintenance_impact("kitchen", 3000) == Decimal("1500.00")
    assert maintenance_impact("hvac", 0) == Decimal("0.00")


def test_creation_adjustment_threshold_is_exclusive():
    assert creation_adjustment("hvac", 1000) is None
    assert creation_adjustment("cosmetic", 500) is None
    assert creation_adjustment("structural", 2000) == Decimal("2200.00")
    assert creation_adjustment("hvac", 5000, cost_threshold=10000) is None


def test_update_adjustment_cost_increase():
    assert update_adjustment("plumbing", 2000, "plumbing", 2500) == Decimal("400.00")


def test_update_adjustment_category_change_only():
    assert update_adjustment("plumbing", 2000, "renovation", 2000) == Decimal("800.00")


def test_update_adjustment_can_be_negative():
    assert update_adjustment("renovation", 3000, "plumbing", 3000) == Decimal("-1200.00")


def test_update_adjustment_skips():
    # nothing changed
    assert update_adjustment("plumbing", 2000, "plumbing", 2000) is None
    # new cost under the threshold
    assert update_adjustment("plumbing", 5000, "plumbing", 900) is None
    # delta 80 is not material
    assert update_adjustment("plumbing", 2000, "plumbing", 2100) is None
    # exactly at the materiality bound is still skipped
    assert update_adjustment("appliance", 2000, "appliance", 2200) is None
