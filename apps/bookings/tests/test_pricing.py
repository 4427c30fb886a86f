"""Tests for booking price calculation."""

from decimal import Decimal

from django.test import SimpleTestCase

from shared.domain.value_objects import Hours, Money

from apps.bookings.domain import pricing
from apps.bookings.domain.entities import GroupBooking, SingleBooking
from apps.bookings.tests.builders import line


class PricingTests(SimpleTestCase):

    def test_single_booking_price(self):
        systems = SingleBooking(line=line('PS5', 2, 100))

        self.assertEqual(pricing.price(Hours('1.5'), systems), Money(Decimal('300')))

    def test_group_price_sums_lines(self):
        systems = GroupBooking(lines=(line('PS5', 2, 100), line('PC', 1, 80)), friend_count=3)

        self.assertEqual(pricing.price(Hours('2'), systems), Money(Decimal('560')))

    def test_price_is_linear_in_duration(self):
        systems = GroupBooking(lines=(line('PS5', 1, 100), line('VR', 2, 150)), friend_count=3)
        base = pricing.price(Hours('1'), systems)

        for hours in ('0.5', '1.5', '3', '4.5'):
            self.assertEqual(pricing.price(Hours(hours), systems), base * Decimal(hours))

    def test_price_ignores_line_order(self):
        lines = (line('PS5', 1, 100), line('PC', 2, 80), line('VR', 1, 150, room_type='Lounge'))

        forward = pricing.price_lines(Hours('1.5'), lines)
        backward = pricing.price_lines(Hours('1.5'), tuple(reversed(lines)))

        self.assertEqual(forward, backward)
        self.assertEqual(forward, Money(Decimal('615')))

    def test_empty_lines_cost_nothing(self):
        self.assertEqual(pricing.price_lines(Hours('2'), ()), Money.zero())

    def test_extension_amount(self):
        systems = SingleBooking(line=line('PC', 3, 80))

        self.assertEqual(pricing.extension_amount(Hours('0.5'), systems), Money(Decimal('120')))
