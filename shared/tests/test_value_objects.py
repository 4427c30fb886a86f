from decimal import Decimal

from django.test import SimpleTestCase

from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import ClockTime, Credential, Hours, Money, PhoneNumber, format_duration


class MoneyTests(SimpleTestCase):

    def test_arithmetic(self):
        self.assertEqual(Money('100') * Hours('1.5'), Money('150'))
        self.assertEqual(Money('100') + Money('50.25'), Money(Decimal('150.25')))
        self.assertEqual(Money('100') - Money('40'), Money('60'))
        self.assertTrue(Money('40') < Money('60'))
        self.assertFalse(Money.zero())

    def test_rejects_negative_and_mixed_currency(self):
        with self.assertRaises(ValueError):
            Money('-1')
        with self.assertRaises(ValueError):
            Money('1', 'INR') + Money('1', 'USD')


class HoursTests(SimpleTestCase):

    def test_bookable_durations(self):
        self.assertEqual(Hours.bookable('1.5').value, Decimal('1.5'))
        for invalid in ('0', '0.25', '1.2'):
            with self.assertRaises(ValidationError):
                Hours.bookable(invalid)

    def test_steps(self):
        self.assertEqual(Hours('1').step_up(), Hours('1.5'))
        self.assertEqual(Hours('0.5').step_down(), Hours('0.5'))

    def test_format_duration(self):
        self.assertEqual(format_duration('1.5'), '1 hour 30 mins')
        self.assertEqual(format_duration('0.5'), '30 mins')
        self.assertEqual(format_duration('3'), '3 hours')
        self.assertEqual(str(Hours('2.5')), '2 hours 30 mins')


class ClockTimeTests(SimpleTestCase):

    def test_parse_formats(self):
        self.assertEqual(ClockTime.parse('3:45 PM'), ClockTime(15, 45))
        self.assertEqual(ClockTime.parse('12:00 am'), ClockTime(0, 0))
        self.assertEqual(ClockTime.parse('12:30 PM'), ClockTime(12, 30))
        self.assertEqual(ClockTime.parse('18:00'), ClockTime(18, 0))
        self.assertEqual(ClockTime(9, 5).label(), '9:05 AM')

    def test_invalid_times(self):
        for text in ('', '13:00 PM', '25:00', 'noon'):
            with self.assertRaises(ValidationError):
                ClockTime.parse(text)


class PhoneAndCredentialTests(SimpleTestCase):

    def test_phone_number_needs_ten_digits(self):
        self.assertEqual(str(PhoneNumber('9876543210')), '9876543210')
        for bad in ('', '98765', '98765432101', '98765-43210'):
            with self.assertRaises(ValidationError):
                PhoneNumber(bad)

    def test_credential_is_not_leaked_by_repr(self):
        credential = Credential('secret-token')

        self.assertEqual(credential.headers(), {'Authorization': 'Bearer secret-token'})
        self.assertNotIn('secret-token', repr(credential))
