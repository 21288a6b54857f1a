"""Тесты PricingEngine и округления."""

import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest
from django.core.exceptions import ImproperlyConfigured

from orders.pricing import (
    OrderItemRequest,
    OrderPricing,
    PricingConfig,
    PricingEngine,
    round_money,
)


# =============================================================================
# ОКРУГЛЕНИЕ
# =============================================================================

@pytest.mark.parametrize('value, expected', [
    (Decimal('2.345'), Decimal('2.35')),
    (Decimal('2.344'), Decimal('2.34')),
    (Decimal('4.9995'), Decimal('5.00')),
    (0.1 + 0.2, Decimal('0.30')),
    (7, Decimal('7.00')),
])
def test_round_money_half_up(value, expected):
    assert round_money(value) == expected


# =============================================================================
# РАСЧЁТ
# =============================================================================

@pytest.mark.django_db
class TestValidateAndPrice:

    def test_components_add_up_exactly(self, engine, vendor, menu, make_item):
        pricing = engine.validate_and_price(vendor.id, [make_item(menu['taco'], 3)])

        assert pricing.errors == ()
        assert pricing.subtotal == Decimal('24.00')
        assert pricing.service_fee == Decimal('3.60')
        assert pricing.sales_tax == Decimal('2.34')
        # 5.99 + 1.50 * 5 миль по умолчанию
        assert pricing.delivery_fee == Decimal('13.49')
        assert pricing.gratuity == Decimal('0.00')
        assert pricing.total == Decimal('43.43')
        assert pricing.subtotal == sum(i.line_total for i in pricing.items)
        assert pricing.total == (
            pricing.subtotal + pricing.sales_tax + pricing.service_fee
            + pricing.delivery_fee + pricing.gratuity
        )

    def test_minimum_order_not_met(self, engine, vendor, menu, make_item):
        pricing = engine.validate_and_price(vendor.id, [make_item(menu['taco'], 2)])

        assert pricing.subtotal == Decimal('16.00')
        assert pricing.errors == ("minimum order of $20.00 not met (current: $16.00)",)
        assert not pricing.is_valid

    def test_free_delivery_above_threshold(self, engine, vendor, menu, make_item):
        pricing = engine.validate_and_price(
            vendor.id, [make_item(menu['burrito'], 8)], delivery_distance_miles=Decimal('40')
        )

        assert pricing.subtotal == Decimal('200.00')
        assert pricing.delivery_fee == Decimal('0.00')

    def test_delivery_fee_is_capped(self, engine, vendor, menu, make_item):
        pricing = engine.validate_and_price(
            vendor.id, [make_item(menu['burrito'], 2)], delivery_distance_miles=10
        )

        assert pricing.subtotal == Decimal('50.00')
        assert pricing.delivery_fee == Decimal('15.00')

    @pytest.mark.parametrize('vendor_id', ['not-a-uuid', str(uuid.uuid4())])
    def test_unknown_vendor(self, engine, vendor_id):
        pricing = engine.validate_and_price(vendor_id, [])

        assert pricing.errors == (f"vendor not found: {vendor_id}",)
        assert pricing.total == Decimal('0.00')
        assert pricing.items == ()

    def test_inactive_vendor_is_not_found(self, engine, vendor, menu, make_item):
        vendor.is_active = False
        vendor.save()

        pricing = engine.validate_and_price(vendor.id, [make_item(menu['taco'], 3)])

        assert pricing.errors == (f"vendor not found: {vendor.id}",)

    def test_menu_item_of_other_vendor_not_found(self, engine, vendor, menu):
        missing = str(uuid.uuid4())
        items = [
            OrderItemRequest(name='Ghost Taco', quantity=1, menu_item_id=missing),
            OrderItemRequest(name='Burrito', quantity=1, menu_item_id=str(menu['burrito'].id)),
        ]

        pricing = engine.validate_and_price(vendor.id, items)

        assert pricing.errors == (f"menu item not found: Ghost Taco ({missing})",)
        assert [i.name for i in pricing.items] == ['Burrito']

    def test_unavailable_item(self, engine, vendor, menu, make_item):
        items = [make_item(menu['burrito'], 1), make_item(menu['horchata'], 1)]

        pricing = engine.validate_and_price(vendor.id, items)

        assert pricing.errors == ("menu item unavailable: Horchata",)
        assert pricing.subtotal == Decimal('25.00')

    def test_client_price_ignored_for_menu_items(self, engine, vendor, menu, make_item):
        pricing = engine.validate_and_price(
            vendor.id, [make_item(menu['burrito'], 1, price=Decimal('0.01'))]
        )

        assert pricing.items[0].verified_price == Decimal('25.00')
        assert pricing.subtotal == Decimal('25.00')

    def test_ad_hoc_item_uses_explicit_price(self, engine, vendor):
        items = [OrderItemRequest(name='Catering tray', quantity=2, price=Decimal('12.50'))]

        pricing = engine.validate_and_price(vendor.id, items)

        assert pricing.errors == ()
        assert pricing.items[0].line_total == Decimal('25.00')
        assert pricing.items[0].menu_item_id is None

    def test_ad_hoc_item_without_price(self, engine, vendor, menu, make_item):
        items = [make_item(menu['burrito'], 1), OrderItemRequest(name='Mystery box', quantity=1)]

        pricing = engine.validate_and_price(vendor.id, items)

        assert pricing.errors == ("price required for ad-hoc item: Mystery box",)

    def test_ad_hoc_item_negative_price(self, engine, vendor, menu, make_item):
        items = [
            make_item(menu['burrito'], 1),
            OrderItemRequest(name='Refund', quantity=1, price=Decimal('-1')),
        ]

        pricing = engine.validate_and_price(vendor.id, items)

        assert pricing.errors == ("invalid price for Refund: -1",)

    @pytest.mark.parametrize('quantity', [0, -1, 1.5, True, None, '2'])
    def test_invalid_quantity(self, engine, vendor, menu, make_item, quantity):
        items = [make_item(menu['burrito'], 1), make_item(menu['taco'], quantity)]

        pricing = engine.validate_and_price(vendor.id, items)

        assert pricing.errors == (f"invalid quantity for Taco: {quantity}",)
        assert len(pricing.items) == 1

    def test_invalid_delivery_distance(self, engine, vendor, menu, make_item):
        pricing = engine.validate_and_price(
            vendor.id, [make_item(menu['burrito'], 1)], delivery_distance_miles='-3'
        )

        assert pricing.errors == ("invalid delivery distance: -3",)

    def test_invalid_gratuity_percent(self, engine, vendor, menu, make_item):
        pricing = engine.validate_and_price(
            vendor.id, [make_item(menu['burrito'], 1)], gratuity_percent='abc'
        )

        assert pricing.errors == ("invalid gratuity percent: abc",)
        assert pricing.gratuity == Decimal('0.00')

    def test_all_errors_reported_together(self, engine, vendor, menu, make_item):
        items = [make_item(menu['horchata'], 1), make_item(menu['taco'], 0)]

        pricing = engine.validate_and_price(vendor.id, items)

        assert pricing.errors == (
            "menu item unavailable: Horchata",
            "invalid quantity for Taco: 0",
            "minimum order of $20.00 not met (current: $0.00)",
        )

    def test_gratuity_percent_of_subtotal(self, engine, vendor, menu, make_item):
        pricing = engine.validate_and_price(
            vendor.id, [make_item(menu['taco'], 3)], gratuity_percent=15
        )

        assert pricing.gratuity == Decimal('3.60')
        assert pricing.total == Decimal('47.03')

    def test_gratuity_rounds_half_up(self, engine, vendor):
        items = [OrderItemRequest(name='Platter', quantity=1, price=Decimal('33.33'))]

        pricing = engine.validate_and_price(vendor.id, items, gratuity_percent=15)

        # 33.33 * 0.15 = 4.9995
        assert pricing.gratuity == Decimal('5.00')

    def test_same_input_same_result(self, engine, vendor, menu, make_item):
        items = [make_item(menu['taco'], 2), make_item(menu['burrito'], 1)]

        first = engine.validate_and_price(vendor.id, items, delivery_distance_miles=3, gratuity_percent=18)
        second = engine.validate_and_price(vendor.id, items, delivery_distance_miles=3, gratuity_percent=18)

        assert first == second

    def test_total_grows_with_quantity(self, engine, vendor, menu, make_item):
        # Все subtotal ниже порога бесплатной доставки
        totals = [
            engine.validate_and_price(vendor.id, [make_item(menu['taco'], quantity)]).total
            for quantity in range(3, 10)
        ]

        assert totals == sorted(totals)
        assert len(set(totals)) == len(totals)

    def test_as_dict_round_trip(self, engine, vendor, menu, make_item):
        pricing = engine.validate_and_price(vendor.id, [make_item(menu['taco'], 3, notes='no onions')])

        assert OrderPricing.from_dict(pricing.as_dict()) == pricing


# =============================================================================
# ИНЪЕКЦИЯ КАТАЛОГА И КОНФИГУРАЦИЯ
# =============================================================================

class StubCatalog:

    def __init__(self, vendor, menu_items):
        self.vendor = vendor
        self.menu_items = menu_items

    def get_vendor(self, vendor_id):
        return self.vendor

    def get_menu_items(self, vendor_id):
        return self.menu_items


def test_engine_accepts_injected_catalog():
    dish = SimpleNamespace(id='dish-1', name='Pho', price=Decimal('14.25'), is_available=True)
    catalog = StubCatalog(SimpleNamespace(minimum_order=Decimal('10.00')), [dish])
    engine = PricingEngine(catalog=catalog, config=PricingConfig(sales_tax_rate=Decimal('0')))

    pricing = engine.validate_and_price(
        'v-1',
        [OrderItemRequest(name='Pho', quantity=2, menu_item_id='dish-1')],
        delivery_distance_miles=0,
    )

    assert pricing.errors == ()
    assert pricing.subtotal == Decimal('28.50')
    assert pricing.sales_tax == Decimal('0.00')
    assert pricing.service_fee == Decimal('4.28')
    assert pricing.delivery_fee == Decimal('5.99')
    assert pricing.total == Decimal('38.77')


def test_pricing_config_from_settings(settings):
    settings.ORDER_PRICING = {'SERVICE_FEE_RATE': '0.10', 'FREE_DELIVERY_THRESHOLD': '99'}

    config = PricingConfig.from_settings()

    assert config.service_fee_rate == Decimal('0.10')
    assert config.free_delivery_threshold == Decimal('99')
    assert config.sales_tax_rate == Decimal('0.0975')


@pytest.mark.parametrize('pricing_settings', [
    {'SURGE_RATE': '2'},
    {'SALES_TAX_RATE': 'lots'},
    {'DELIVERY_BASE_FEE': '-1'},
])
def test_pricing_config_rejects_bad_settings(settings, pricing_settings):
    settings.ORDER_PRICING = pricing_settings

    with pytest.raises(ImproperlyConfigured):
        PricingConfig.from_settings()
