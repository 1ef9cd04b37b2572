"""
Tests for the price catalog.
"""

from decimal import Decimal

from accounts.models import MemberStatus
from payments import catalog


class TestPrices:
    def test_membership_prices(self):
        assert catalog.get_price("price_1RknRO05Uibkj68MUPgVuW2Y") == Decimal("30.00")
        assert catalog.get_price("price_1RknR205Uibkj68MeezgOEAs") == Decimal("20.00")
        assert catalog.get_price("price_1RknQd05Uibkj68MgNOg2UxF") == Decimal("10.00")

    def test_training_alias(self):
        assert catalog.get_price("price_pssm") == Decimal("250.00")
        assert catalog.get_training("price_vss").training_key == "vss"

    def test_unknown_price(self):
        assert catalog.get_price("price_unknown") is None
        assert catalog.get_price(None) is None

    def test_membership_status(self):
        assert catalog.get_membership_status("price_1RknR205Uibkj68MeezgOEAs") == MemberStatus.PROFESSIONAL
        assert catalog.get_membership_status("price_pssm") is None


class TestDiscount:
    def test_member_discount(self):
        assert catalog.calculate_discounted_price(Decimal("250"), Decimal("35"), True) == Decimal("215")

    def test_non_member_pays_full_price(self):
        assert catalog.calculate_discounted_price(Decimal("250"), Decimal("35"), False) == Decimal("250")

    def test_never_negative(self):
        assert catalog.calculate_discounted_price(Decimal("10"), Decimal("15"), True) == Decimal("0")

    def test_offer_price_for(self):
        vss = catalog.get_training("price_vss")
        assert vss.price_for(True) == Decimal("35.00")
        assert vss.duration_hours == 7
