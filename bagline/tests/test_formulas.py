"""Tests for the pure consumption, purchase and costing rules."""

from __future__ import annotations

from decimal import Decimal

import pytest

from bagline.app.services.formulas import (
    allocate_transport,
    calculate_bill_amounts,
    calculate_consumption,
    calculate_order_cost,
    calculate_purchase_line,
    calculate_selling_price,
    effective_inventory_quantity,
    is_manual_formula,
    process_order_components,
    scale_manual_consumption,
)


class TestManualFormula:
    @pytest.mark.parametrize(
        "component, expected",
        [
            ({"formula": "manual"}, True),
            ({"is_manual_consumption": True}, True),
            ({"formula": "manual", "is_manual_consumption": False}, True),
            ({"formula": "standard"}, False),
            ({"is_manual_consumption": "yes"}, False),
            ({}, False),
            (None, False),
        ],
    )
    def test_detection(self, component: dict | None, expected: bool) -> None:
        assert is_manual_formula(component) is expected

    def test_scales_by_order_quantity(self) -> None:
        scaled = scale_manual_consumption(
            {"formula": "manual", "consumption": Decimal("600")}, 3
        )
        assert scaled["base_consumption"] == Decimal("600")
        assert scaled["consumption"] == Decimal("1800")

    def test_rescaling_starts_from_base_not_previous_result(self) -> None:
        once = scale_manual_consumption({"formula": "manual", "consumption": Decimal("600")}, 3)
        again = scale_manual_consumption(once, 6)
        assert again["consumption"] == Decimal("3600")
        assert again["base_consumption"] == Decimal("600")

    def test_calculated_component_is_untouched(self) -> None:
        component = {"formula": "standard", "consumption": Decimal("12")}
        assert scale_manual_consumption(component, 10) == component

    def test_input_is_not_mutated(self) -> None:
        component = {"formula": "manual", "consumption": Decimal("2")}
        scale_manual_consumption(component, 5)
        assert component == {"formula": "manual", "consumption": Decimal("2")}


class TestProcessOrderComponents:
    def test_mixed_components(self) -> None:
        result = process_order_components(
            [
                {"formula": "manual", "consumption": Decimal("1.5")},
                {"formula": "standard", "consumption": Decimal("40")},
            ],
            100,
        )
        assert result[0]["consumption"] == Decimal("150")
        assert result[1]["consumption"] == Decimal("40")

    @pytest.mark.parametrize("quantity", [0, -4, None])
    def test_invalid_quantity_leaves_components_unscaled(self, quantity: int | None) -> None:
        result = process_order_components(
            [{"formula": "manual", "consumption": Decimal("1.5")}], quantity
        )
        assert result == [{"formula": "manual", "consumption": Decimal("1.5")}]

    def test_empty(self) -> None:
        assert process_order_components([], 10) == []


class TestConsumption:
    def test_one_meter_per_bag(self) -> None:
        # 39.37 in x 10 in cut from a 10 in roll is exactly one metre
        assert calculate_consumption(Decimal("39.37"), 10, 10) == Decimal("1.0000")

    def test_scales_with_quantity(self) -> None:
        assert calculate_consumption(Decimal("39.37"), 10, 10, 250) == Decimal("250.0000")

    @pytest.mark.parametrize("dims", [(None, 10, 10), (10, 0, 10), (10, 10, -1), ("", "", "")])
    def test_missing_dimension_gives_zero(self, dims: tuple) -> None:
        assert calculate_consumption(*dims) == Decimal("0")

    def test_effective_quantity_prefers_actual_meter(self) -> None:
        assert effective_inventory_quantity({"quantity": 5, "actual_meter": "7.5"}) == Decimal("7.5")
        assert effective_inventory_quantity({"quantity": 5, "actual_meter": 0}) == Decimal("5")
        assert effective_inventory_quantity({"quantity": 5}) == Decimal("5")


class TestPurchaseLine:
    def test_main_unit_amounts(self) -> None:
        amounts = calculate_purchase_line(quantity=10, unit_price=5, gst_rate=18)
        assert amounts.base_amount == Decimal("50")
        assert amounts.gst_amount == Decimal("9")
        assert amounts.line_total == Decimal("59")

    def test_alternate_unit_wins_when_complete(self) -> None:
        amounts = calculate_purchase_line(
            quantity=10, unit_price=5, alt_quantity=4, alt_unit_price=20, gst_rate=5
        )
        assert amounts.base_amount == Decimal("80")
        assert amounts.gst_amount == Decimal("4")
        assert amounts.line_total == Decimal("84")

    def test_half_alternate_falls_back_to_main_unit(self) -> None:
        amounts = calculate_purchase_line(quantity=10, unit_price=5, alt_quantity=4)
        assert amounts.base_amount == Decimal("50")


class TestTransportAllocation:
    def test_shares_always_add_up(self) -> None:
        shares = allocate_transport([1, 1, 1], Decimal("100"))
        assert shares == [Decimal("33.3333"), Decimal("33.3333"), Decimal("33.3334")]
        assert sum(shares) == Decimal("100")

    def test_proportional(self) -> None:
        assert allocate_transport([10, 30], 40) == [Decimal("10"), Decimal("30")]

    def test_zero_weight_line_gets_nothing(self) -> None:
        assert allocate_transport([1, 1, 0], 10) == [Decimal("5"), Decimal("5"), Decimal("0")]

    def test_no_charge(self) -> None:
        assert allocate_transport([1, 2], 0) == [Decimal("0"), Decimal("0")]


class TestBillAmounts:
    def test_vendor_bill(self) -> None:
        amounts = calculate_bill_amounts(
            quantity=2000, rate=Decimal("0.75"), gst_percentage=18, other_expenses=50
        )
        assert amounts.subtotal == Decimal("1500")
        assert amounts.gst_amount == Decimal("270")
        assert amounts.total_amount == Decimal("1820")

    def test_separate_transport_is_added(self) -> None:
        amounts = calculate_bill_amounts(
            quantity=100,
            rate=5,
            gst_percentage=12,
            transport_charge=40,
            transport_included=False,
        )
        assert amounts.transport_charge == Decimal("40")
        assert amounts.total_amount == Decimal("600")

    def test_included_transport_is_not_charged(self) -> None:
        amounts = calculate_bill_amounts(
            quantity=100, rate=5, transport_charge=40, transport_included=True
        )
        assert amounts.transport_charge == Decimal("0")
        assert amounts.total_amount == Decimal("500")


class TestCosting:
    def test_order_cost(self) -> None:
        cost = calculate_order_cost(
            [
                {"consumption": Decimal("10"), "material_rate": Decimal("12")},
                {"consumption": Decimal("5"), "material_rate": Decimal("2")},
            ],
            100,
            cutting_charge=1,
            stitching_charge="0.5",
        )
        assert cost.material_cost == Decimal("130")
        assert cost.production_cost == Decimal("150")
        assert cost.total_cost == Decimal("280")
        assert cost.cost_per_bag == Decimal("2.8")

    def test_component_without_rate_costs_nothing(self) -> None:
        cost = calculate_order_cost([{"consumption": Decimal("10"), "material_rate": None}], 1)
        assert cost.total_cost == Decimal("0")

    def test_selling_price(self) -> None:
        assert calculate_selling_price(Decimal("100"), Decimal("20")) == Decimal("120")
        assert calculate_selling_price(Decimal("100")) == Decimal("115")
        assert calculate_selling_price(0) == Decimal("0")
