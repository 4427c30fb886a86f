"""Tests for the availability oracle adapter."""

from __future__ import annotations

import threading
from datetime import date
from unittest.mock import MagicMock

from django.test import SimpleTestCase, override_settings

from shared.domain.exceptions import BackendUnavailable
from shared.domain.value_objects import Credential, Hours

from apps.bookings.application.availability import (
    AvailabilityOracle,
    AvailabilityQuery,
    AvailabilitySource,
    FallbackPolicy,
)


def query(system_type='PS5', quantity=1, room_ref='room-arena') -> AvailabilityQuery:
    return AvailabilityQuery(
        venue_id='cafe-1',
        room_ref=room_ref,
        system_type=system_type,
        booking_date=date(2025, 8, 1),
        duration=Hours('1'),
        quantity=quantity,
    )


class StubClient:
    """Answers per system type; an exception instance is raised instead of returned."""

    def __init__(self, answers, gate: threading.Event | None = None):
        self.answers = answers
        self.gate = gate
        self.calls = []
        self._lock = threading.Lock()

    def check_availability(self, venue_id, room_ref, system_type, booking_date, duration,
                           quantity, *, credential=None, timeout=None):
        with self._lock:
            self.calls.append((room_ref, system_type, quantity, credential, timeout))
        if self.gate is not None and system_type == 'SLOW':
            self.gate.wait(5)
        answer = self.answers.get(system_type, True)
        if isinstance(answer, Exception):
            raise answer
        return answer


class AvailabilityOracleTests(SimpleTestCase):

    def test_all_lines_available(self):
        client = StubClient({'PS5': True, 'PC': True})
        oracle = AvailabilityOracle(client=client, policy=FallbackPolicy.FAIL_OPEN, timeout=1)
        credential = Credential('token-1')

        result = oracle.check_all([query('PS5', 2), query('PC', 1)], credential=credential, version=3)

        self.assertTrue(result.available)
        self.assertEqual(result.source, AvailabilitySource.CONFIRMED)
        self.assertTrue(result.confirmed)
        self.assertEqual(result.version, 3)
        self.assertEqual(
            sorted((c[1], c[2]) for c in client.calls),
            [('PC', 1), ('PS5', 2)],
        )
        self.assertTrue(all(c[3] is credential and c[4] == 1 for c in client.calls))

    def test_any_unavailable_line_makes_result_unavailable(self):
        client = StubClient({'PS5': True, 'PC': False, 'VR': True})
        oracle = AvailabilityOracle(client=client, policy=FallbackPolicy.FAIL_OPEN, timeout=1)

        with self.assertLogs('apps.bookings.application.availability', level='INFO') as logs:
            result = oracle.check_all([query('PS5'), query('PC'), query('VR')])

        self.assertFalse(result.available)
        self.assertEqual(result.source, AvailabilitySource.CONFIRMED)
        self.assertTrue(any('Not available: 1x PC' in line for line in logs.output))

    def test_failure_falls_back_to_available_under_fail_open(self):
        client = StubClient({'PS5': BackendUnavailable('502 from backend', status_code=502)})
        oracle = AvailabilityOracle(client=client, policy=FallbackPolicy.FAIL_OPEN, timeout=1)

        with self.assertLogs('apps.bookings.application.availability', level='WARNING') as logs:
            result = oracle.check_all([query('PS5')], version=1)

        self.assertTrue(result.available)
        self.assertEqual(result.source, AvailabilitySource.FALLBACK)
        self.assertFalse(result.confirmed)
        self.assertEqual(result.unknown, ('1x PS5 in room-arena on 2025-08-01',))
        self.assertTrue(any('source=fallback' in line for line in logs.output))

    def test_unexpected_client_error_falls_back(self):
        client = StubClient({'PS5': True, 'PC': ConnectionError('socket closed')})
        oracle = AvailabilityOracle(client=client, policy=FallbackPolicy.FAIL_OPEN, timeout=1)

        with self.assertLogs('apps.bookings.application.availability', level='ERROR') as logs:
            result = oracle.check_all([query('PS5'), query('PC')], version=2)

        self.assertTrue(result.available)
        self.assertEqual(result.source, AvailabilitySource.FALLBACK)
        self.assertEqual(result.unknown, ('1x PC in room-arena on 2025-08-01',))
        self.assertIn('socket closed', logs.output[0])

    def test_failure_is_unavailable_under_fail_closed(self):
        client = StubClient({'PS5': True, 'PC': BackendUnavailable('connection refused')})
        oracle = AvailabilityOracle(client=client, policy=FallbackPolicy.FAIL_CLOSED, timeout=1)

        with self.assertLogs('apps.bookings.application.availability', level='WARNING'):
            result = oracle.check_all([query('PS5'), query('PC')])

        self.assertFalse(result.available)
        self.assertEqual(result.source, AvailabilitySource.FALLBACK)

    def test_confirmed_false_wins_over_unknown(self):
        client = StubClient({'PS5': BackendUnavailable('boom'), 'PC': False})
        oracle = AvailabilityOracle(client=client, policy=FallbackPolicy.FAIL_OPEN, timeout=1, max_workers=1)

        with self.assertLogs('apps.bookings.application.availability', level='INFO'):
            result = oracle.check_all([query('PS5'), query('PC')])

        self.assertFalse(result.available)
        self.assertEqual(result.source, AvailabilitySource.CONFIRMED)

    def test_slow_call_times_out_into_fallback(self):
        gate = threading.Event()
        self.addCleanup(gate.set)
        client = StubClient({'PS5': True}, gate=gate)
        oracle = AvailabilityOracle(client=client, policy=FallbackPolicy.FAIL_OPEN, timeout=0.2)

        with self.assertLogs('apps.bookings.application.availability', level='WARNING') as logs:
            result = oracle.check_all([query('PS5'), query('SLOW')], version=7)

        self.assertTrue(result.available)
        self.assertEqual(result.source, AvailabilitySource.FALLBACK)
        self.assertEqual(result.version, 7)
        self.assertEqual(len(result.unknown), 1)
        self.assertIn('SLOW', result.unknown[0])
        self.assertTrue(any('timed out' in line for line in logs.output))

    def test_empty_query_list_is_rejected(self):
        oracle = AvailabilityOracle(client=MagicMock(), policy=FallbackPolicy.FAIL_OPEN, timeout=1)

        with self.assertRaises(ValueError):
            oracle.check_all([])

    def test_single_check_returns_bool(self):
        client = MagicMock()
        client.check_availability.return_value = True
        oracle = AvailabilityOracle(client=client, policy=FallbackPolicy.FAIL_OPEN, timeout=2)

        available = oracle.check_availability('cafe-1', 'room-arena', 'PS5', date(2025, 8, 1), Hours('1'), 2)

        self.assertIs(available, True)
        client.check_availability.assert_called_once_with(
            'cafe-1', 'room-arena', 'PS5', date(2025, 8, 1), Hours('1'), 2,
            credential=None, timeout=2,
        )

    @override_settings(AVAILABILITY_FALLBACK_POLICY='fail_closed', AVAILABILITY_CHECK_TIMEOUT=3)
    def test_policy_and_timeout_come_from_settings(self):
        oracle = AvailabilityOracle(client=MagicMock())

        self.assertIs(oracle.policy, FallbackPolicy.FAIL_CLOSED)
        self.assertEqual(oracle.timeout, 3)
