"""Local mirror of the customer's cafe bookings."""

from __future__ import annotations

from decimal import Decimal

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.infrastructure.fields import EncryptedCharField


class BookingRecord(models.Model):
    """Booking as last seen from the cafe backend, plus local settlement state."""

    class Status(models.TextChoices):
        PENDING_PAYMENT = "Pending Payment", _("Pending payment")
        BOOKED = "Booked", _("Booked")
        ACTIVE = "Active", _("Active")
        COMPLETED = "Completed", _("Completed")
        CANCELLED = "Cancelled", _("Cancelled")

    class ExtensionPaymentStatus(models.TextChoices):
        NONE = "none", _("No extension")
        PENDING = "pending", _("Extension payment pending")
        SETTLED = "settled", _("Extension paid")

    id = models.CharField(primary_key=True, max_length=64, help_text=_("Backend booking id."))
    venue_id = models.CharField(max_length=64)
    booking_date = models.DateField()
    start_time = models.CharField(max_length=16)
    duration = models.DecimalField(max_digits=6, decimal_places=2)
    phone_number = models.CharField(max_length=10, blank=True)
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="INR")
    status = models.CharField(
        max_length=32,
        choices=Status.choices,
        default=Status.PENDING_PAYMENT,
    )

    # Single booking
    room_type = models.CharField(max_length=120, blank=True)
    system_type = models.CharField(max_length=120, blank=True)
    number_of_systems = models.PositiveSmallIntegerField(null=True, blank=True)
    price_per_hour = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    # Group booking
    systems_booked = models.JSONField(default=list, blank=True)
    friend_count = models.PositiveSmallIntegerField(null=True, blank=True)

    otp = EncryptedCharField(blank=True, default="")
    session_start_time = models.DateTimeField(null=True, blank=True)
    extended_time = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal("0"))
    extension_payment_status = models.CharField(
        max_length=16,
        choices=ExtensionPaymentStatus.choices,
        default=ExtensionPaymentStatus.NONE,
    )
    extension_payment_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
    )
    pending_payment_id = models.CharField(
        max_length=64,
        blank=True,
        help_text=_("Gateway order awaiting verification."),
    )
    refund = models.JSONField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    # Backend timestamps, not auto_now: they drive the "updated by the venue" badge
    created_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(null=True, blank=True)
    synced_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-booking_date", "-created_at"]
        indexes = [
            models.Index(fields=["booking_date"]),
            models.Index(fields=["status"]),
        ]

    def __str__(self) -> str:
        return f"Booking {self.id} ({self.status})"

    @property
    def is_group(self) -> bool:
        return bool(self.systems_booked)
