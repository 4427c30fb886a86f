"""Tests for venue catalog normalisation."""

from __future__ import annotations

from decimal import Decimal

from django.test import SimpleTestCase

from shared.domain.value_objects import Money

from apps.bookings.tests.builders import arena_room, unit
from apps.cafes.domain.catalog import (
    Room,
    SystemStatus,
    Venue,
    find_group,
    group_systems_by_type,
)


class GroupSystemsByTypeTests(SimpleTestCase):

    def test_groups_only_available_units(self):
        groups = group_systems_by_type(arena_room())

        self.assertEqual([group.type for group in groups], ['PS5', 'PC'])
        ps5 = find_group(groups, 'PS5')
        self.assertEqual(ps5.count, 2)
        self.assertEqual(ps5.unit_ids, ('ps5-1', 'ps5-2'))
        self.assertEqual(find_group(groups, 'PC').count, 5)

    def test_count_matches_identifiers_for_every_group(self):
        room = Room(reference='r', name='Mixed', systems=[
            unit('a', 'PC', 50),
            unit('b', 'PC', 50, SystemStatus.ACTIVE),
            unit('c', 'Xbox', 70),
            unit('d', 'PC', 50, SystemStatus.UNDER_MAINTENANCE),
            unit('e', 'Xbox', 70),
        ])

        for group in group_systems_by_type(room):
            self.assertEqual(group.count, len(group.unit_ids))
        self.assertEqual(find_group(group_systems_by_type(room), 'PC').unit_ids, ('a',))

    def test_group_price_is_cheapest_unit(self):
        room = Room(reference='r', name='Mixed', systems=[
            unit('a', 'PC', 90),
            unit('b', 'PC', 60),
            unit('c', 'PC', 75),
        ])

        [group] = group_systems_by_type(room)

        self.assertEqual(group.unit_price, Money(Decimal('60')))

    def test_units_without_identifier_are_skipped_with_warning(self):
        room = Room(reference='r', name='Mixed', systems=[
            unit(None, 'PC', 50),
            unit('b', 'PC', 50),
        ])

        with self.assertLogs('apps.cafes.domain.catalog', level='WARNING') as logs:
            [group] = group_systems_by_type(room)

        self.assertEqual(group.unit_ids, ('b',))
        self.assertIn('no identifier', logs.output[0])

    def test_room_without_eligible_units_yields_empty_list(self):
        room = Room(reference='r', name='Closed corner', systems=[
            unit('a', 'PC', 50, SystemStatus.UNDER_MAINTENANCE),
        ])

        self.assertEqual(group_systems_by_type(room), [])
        self.assertEqual(group_systems_by_type(Room(reference='x', name='Empty')), [])

    def test_find_group_raises_for_unknown_type(self):
        with self.assertRaises(KeyError):
            find_group(group_systems_by_type(arena_room()), 'Switch')


class CatalogPayloadTests(SimpleTestCase):

    def test_venue_from_backend_payload(self):
        venue = Venue.from_payload({
            '_id': 'cafe-9',
            'name': 'Respawn',
            'rooms': [{
                'roomType': 'Main Hall',
                'systems': [
                    {'_id': 's1', 'type': 'PC', 'pricePerHour': 60, 'status': 'Available'},
                    {'systemId': 's2', 'type': 'PC', 'pricePerHour': 50},
                    {'type': 'PC', 'pricePerHour': 40},
                    {'_id': 's4', 'type': 'PS5', 'pricePerHour': 120, 'status': 'Under Maintenance'},
                ],
            }],
        })

        self.assertTrue(venue.is_open)
        room = venue.get_room('Main Hall')
        self.assertEqual(room.name, 'Main Hall')
        self.assertEqual(room.summary(), 'PC (3), PS5 (1)')
        self.assertEqual(room.starting_price(), Money(Decimal('40')))
        self.assertEqual(room.systems[3].status, SystemStatus.UNDER_MAINTENANCE)

        with self.assertLogs('apps.cafes.domain.catalog', level='WARNING'):
            [group] = group_systems_by_type(room)
        self.assertEqual(group.unit_ids, ('s1', 's2'))
        self.assertEqual(group.unit_price, Money(Decimal('50')))

    def test_closed_venue(self):
        self.assertFalse(Venue.from_payload({'_id': 'c', 'isOpen': False}).is_open)
        self.assertFalse(Venue.from_payload({'_id': 'c', 'status': 'closed'}).is_open)

    def test_unknown_room_reference(self):
        with self.assertRaises(KeyError):
            Venue.from_payload({'_id': 'c', 'rooms': []}).get_room('nope')
