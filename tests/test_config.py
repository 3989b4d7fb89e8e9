"""Tests for environment-driven fee policy defaults."""

from decimal import Decimal

import pytest

from billing import config
from billing.errors import ValidationError
from billing.models import FeeKind, FeeRule


class TestLoadFeePolicy:
    def test_defaults_without_environment(self, monkeypatch):
        for name in ("BILLING_TAX_RATE", "BILLING_PLATFORM_FEE", "BILLING_PROCESSING_FEE"):
            monkeypatch.delenv(name, raising=False)
        policy = config.load_fee_policy()
        assert policy.tax_rate == Decimal("0")
        assert policy.platform_fee == FeeRule()
        assert policy.processing_fee == FeeRule()

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("BILLING_TAX_RATE", "0.08")
        monkeypatch.setenv("BILLING_PLATFORM_FEE", '{"type": "percent", "value": 0.05}')
        monkeypatch.setenv("BILLING_PROCESSING_FEE", "0.30")
        policy = config.load_fee_policy()
        assert policy.tax_rate == Decimal("0.08")
        assert policy.platform_fee.kind == FeeKind.PERCENT
        assert policy.platform_fee.value == Decimal("0.05")
        assert policy.processing_fee == FeeRule.flat("0.30")

    def test_bad_tax_rate(self, monkeypatch):
        monkeypatch.setenv("BILLING_TAX_RATE", "eight percent")
        with pytest.raises(ValidationError):
            config.load_fee_policy()

    def test_default_menus(self):
        assert [o.option_id for o in config.DEFAULT_SHIPPING_OPTIONS] == ["free", "standard", "express"]
        assert [p.code for p in config.DEFAULT_PROMO_CODES] == ["SAVE10"]
