"""
Common Value Objects

Value objects used across the booking and payment contexts:
- Money: Monetary amounts with currency
- Hours: Session length in hours with half-hour granularity
- ClockTime: A start time such as "3:45 PM"
- PhoneNumber: A ten digit contact number
- Credential: The bearer token attached to authenticated backend calls
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from shared.domain.base import ValueObject
from shared.domain.exceptions import ValidationError

SUPPORTED_CURRENCIES = ['INR', 'USD', 'EUR']

HALF_HOUR = Decimal('0.5')


def to_decimal(value) -> Decimal:
    """Coerce JSON numbers and strings to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"Not a number: {value!r}")


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Immutable and supports arithmetic operations.
    """
    amount: Decimal
    currency: str = 'INR'

    def __post_init__(self):
        object.__setattr__(self, 'amount', to_decimal(self.amount))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @classmethod
    def zero(cls, currency: str = 'INR') -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        """Multiply money by a factor"""
        if isinstance(factor, Hours):
            factor = factor.value
        if not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only multiply Money by number")
        return Money(self.amount * to_decimal(factor), self.currency)

    __rmul__ = __mul__

    def __lt__(self, other: 'Money') -> bool:
        if not isinstance(other, Money):
            raise TypeError("Can only compare Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot compare different currencies: {self.currency} and {other.currency}")
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        return self == other or self < other

    def __bool__(self):
        return self.amount != 0

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class Hours(ValueObject):
    """
    Session length in hours

    Customer chosen durations are at least half an hour and move in
    half-hour steps. Owner extensions may add any positive amount.
    """
    value: Decimal

    def __post_init__(self):
        object.__setattr__(self, 'value', to_decimal(self.value))
        if self.value < 0:
            raise ValueError("Hours cannot be negative")

    @classmethod
    def bookable(cls, value) -> 'Hours':
        """Validate a customer-chosen duration."""
        hours = cls(value)
        if hours.value < HALF_HOUR:
            raise ValidationError("Duration must be at least 30 minutes", field='duration')
        if hours.value % HALF_HOUR != 0:
            raise ValidationError("Duration must be a multiple of 30 minutes", field='duration')
        return hours

    def step_up(self) -> 'Hours':
        return Hours(self.value + HALF_HOUR)

    def step_down(self) -> 'Hours':
        return Hours(max(HALF_HOUR, self.value - HALF_HOUR))

    def __add__(self, other: 'Hours') -> 'Hours':
        if not isinstance(other, Hours):
            raise TypeError("Can only add Hours to Hours")
        return Hours(self.value + other.value)

    def __str__(self):
        return format_duration(self.value)


def format_duration(hours) -> str:
    """Render 1.5 as "1 hour 30 mins" and 0.5 as "30 mins"."""
    hours = to_decimal(hours)
    whole = int(hours)
    minutes = int((hours - whole) * 60)
    result = ''
    if whole > 0:
        result += f"{whole} hour{'s' if whole > 1 else ''}"
    if minutes > 0:
        result += f"{' ' if whole > 0 else ''}{minutes} mins"
    return result or '0 hours'


_CLOCK_12H = re.compile(r'^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$')
_CLOCK_24H = re.compile(r'^\s*(\d{1,2}):(\d{2})\s*$')


@dataclass(frozen=True)
class ClockTime(ValueObject):
    """
    Wall clock time of day

    Bookings carry their start time as a human readable string ("3:45 PM").
    """
    hour: int
    minute: int

    def __post_init__(self):
        if not 0 <= self.hour <= 23 or not 0 <= self.minute <= 59:
            raise ValueError(f"Invalid time {self.hour}:{self.minute:02d}")

    @classmethod
    def parse(cls, text: str) -> 'ClockTime':
        """Parse "3:45 PM", "03:00 pm" or "15:00" into 24-hour hour/minute."""
        if not text:
            raise ValidationError("Start time is required", field='start_time')
        match = _CLOCK_12H.match(text)
        if match:
            hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).upper()
            if not 1 <= hour <= 12:
                raise ValidationError(f"Invalid start time: {text}", field='start_time')
            if meridiem == 'PM' and hour != 12:
                hour += 12
            elif meridiem == 'AM' and hour == 12:
                hour = 0
            return cls(hour, minute)
        match = _CLOCK_24H.match(text)
        if match:
            try:
                return cls(int(match.group(1)), int(match.group(2)))
            except ValueError:
                raise ValidationError(f"Invalid start time: {text}", field='start_time')
        raise ValidationError(f"Invalid start time: {text}", field='start_time')

    def label(self) -> str:
        hour = self.hour % 12 or 12
        meridiem = 'PM' if self.hour >= 12 else 'AM'
        return f"{hour}:{self.minute:02d} {meridiem}"

    def __str__(self):
        return self.label()


@dataclass(frozen=True)
class PhoneNumber(ValueObject):
    """Customer contact number, exactly ten digits."""
    digits: str

    def __post_init__(self):
        if not self.digits or not re.fullmatch(r'\d{10}', self.digits):
            raise ValidationError("Phone number must be exactly 10 digits", field='phone_number')

    def __str__(self):
        return self.digits


@dataclass(frozen=True)
class Credential(ValueObject):
    """
    Opaque bearer credential for authenticated backend calls

    Passed explicitly into every collaborator call; acquiring and
    renewing it happens outside the booking core.
    """
    token: str

    def __post_init__(self):
        if not self.token:
            raise ValueError("Credential token is required")

    def headers(self) -> dict:
        return {'Authorization': f'Bearer {self.token}'}

    def __repr__(self):
        return "Credential(token='***')"
