"""
Unit tests for money handling and line validation.

Verifies:
- Float constructor prohibition
- Sub-cent amounts refused, never rounded
- Natural-sign deltas
- MinorUnits column round-trip
- Structural line item validation
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.db.base import MinorUnits
from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.domain.money import (
    ZERO,
    has_sub_cent_precision,
    natural_delta,
    to_decimal,
    within_tolerance,
)
from ledger_kernel.domain.validation import validate_line_specs
from ledger_kernel.exceptions import (
    InsufficientLineItemsError,
    InvalidAmountError,
    ValidationError,
)


class TestToDecimal:
    """Tests for to_decimal."""

    def test_string(self):
        assert to_decimal("100.50") == Decimal("100.50")

    def test_int(self):
        assert to_decimal(7) == Decimal("7")

    def test_float_rejected(self):
        with pytest.raises(TypeError):
            to_decimal(0.1)

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            to_decimal(True)

    def test_invalid_string_raises(self):
        with pytest.raises(ValueError):
            to_decimal("not a number")

    def test_nan_rejected(self):
        with pytest.raises(ValueError):
            to_decimal("NaN")


class TestPrecision:
    def test_two_places_ok(self):
        assert not has_sub_cent_precision(Decimal("10.25"))

    def test_trailing_zeros_ok(self):
        assert not has_sub_cent_precision(Decimal("10.2500"))

    def test_three_places_detected(self):
        assert has_sub_cent_precision(Decimal("10.255"))


class TestNaturalDelta:
    def test_debit_normal(self):
        assert natural_delta(True, Decimal("30.00"), Decimal("10.00")) == Decimal("20.00")

    def test_credit_normal(self):
        assert natural_delta(False, Decimal("30.00"), Decimal("10.00")) == Decimal("-20.00")

    def test_tolerance_exact(self):
        assert within_tolerance(Decimal("100.00"), Decimal("100.00"), ZERO)
        assert not within_tolerance(Decimal("100.00"), Decimal("99.98"), ZERO)

    def test_tolerance_configured(self):
        assert within_tolerance(Decimal("100.00"), Decimal("99.99"), Decimal("0.01"))
        assert not within_tolerance(Decimal("100.00"), Decimal("99.98"), Decimal("0.01"))


class TestMinorUnits:
    """The column type stores integer cents and loads two-place Decimals."""

    def test_bind_to_cents(self):
        assert MinorUnits().process_bind_param(Decimal("12.34"), None) == 1234

    def test_load_from_cents(self):
        assert MinorUnits().process_result_value(1234, None) == Decimal("12.34")
        assert str(MinorUnits().process_result_value(500, None)) == "5.00"

    def test_negative(self):
        assert MinorUnits().process_bind_param(Decimal("-0.05"), None) == -5

    def test_sub_cent_refused(self):
        with pytest.raises(ValueError):
            MinorUnits().process_bind_param(Decimal("1.005"), None)

    def test_none_passthrough(self):
        assert MinorUnits().process_bind_param(None, None) is None
        assert MinorUnits().process_result_value(None, None) is None


class TestValidateLineSpecs:
    """Structural checks that run before anything touches the session."""

    def test_two_lines_normalized(self):
        a, b = uuid4(), uuid4()
        lines = validate_line_specs([LineSpec.dr(a, "100"), LineSpec.cr(b, 100)])
        assert lines[0].debit == Decimal("100.00")
        assert lines[0].credit == Decimal("0.00")
        assert lines[1].credit == Decimal("100.00")
        assert str(lines[1].credit) == "100.00"

    def test_unbalanced_is_not_a_structural_error(self):
        a, b = uuid4(), uuid4()
        lines = validate_line_specs([LineSpec.dr(a, "100.00"), LineSpec.cr(b, "90.00")])
        assert len(lines) == 2

    def test_one_line_rejected(self):
        with pytest.raises(InsufficientLineItemsError) as exc_info:
            validate_line_specs([LineSpec.dr(uuid4(), "10.00")])
        assert exc_info.value.count == 1
        assert isinstance(exc_info.value, ValidationError)

    def test_no_lines_rejected(self):
        with pytest.raises(InsufficientLineItemsError):
            validate_line_specs([])

    def test_negative_rejected(self):
        with pytest.raises(InvalidAmountError) as exc_info:
            validate_line_specs(
                [LineSpec.dr(uuid4(), "-5.00"), LineSpec.cr(uuid4(), "5.00")]
            )
        assert exc_info.value.line_index == 0

    def test_both_zero_rejected(self):
        with pytest.raises(InvalidAmountError):
            validate_line_specs(
                [LineSpec(uuid4(), "0", "0"), LineSpec.cr(uuid4(), "5.00")]
            )

    def test_sub_cent_rejected(self):
        with pytest.raises(InvalidAmountError) as exc_info:
            validate_line_specs(
                [LineSpec.dr(uuid4(), "5.00"), LineSpec.cr(uuid4(), "5.001")]
            )
        assert exc_info.value.line_index == 1

    def test_float_rejected(self):
        with pytest.raises(InvalidAmountError):
            validate_line_specs(
                [LineSpec.dr(uuid4(), 5.0), LineSpec.cr(uuid4(), "5.00")]
            )

    def test_missing_account_rejected(self):
        with pytest.raises(ValidationError):
            validate_line_specs([LineSpec.dr(None, "5.00"), LineSpec.cr(uuid4(), "5.00")])

    def test_both_sides_allowed(self):
        lines = validate_line_specs(
            [LineSpec(uuid4(), "5.00", "2.00"), LineSpec.cr(uuid4(), "3.00")]
        )
        assert lines[0].debit == Decimal("5.00")
        assert lines[0].credit == Decimal("2.00")
