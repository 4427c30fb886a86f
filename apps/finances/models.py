"""Payment attempt records."""

from __future__ import annotations

from decimal import Decimal

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class PaymentAttempt(models.Model):
    """One attempt to settle an obligation, on either rail."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Order created, awaiting verification")
        SUCCESS = "success", _("Settled")
        FAILED = "failed", _("Failed")
        RECONCILIATION = "reconciliation", _("Charged but not verified, needs manual reconciliation")

    class Method(models.TextChoices):
        WALLET = "wallet", _("Wallet")
        CARD = "card", _("Card")
        UPI = "upi", _("UPI")
        NETBANKING = "netbanking", _("Net banking")

    class Kind(models.TextChoices):
        BOOKING = "booking", _("Booking payment")
        EXTENSION = "extension", _("Extension payment")
        TOP_UP = "topup", _("Wallet top-up")

    booking_id = models.CharField(max_length=64, blank=True)
    kind = models.CharField(max_length=16, choices=Kind.choices)
    method = models.CharField(max_length=16, choices=Method.choices)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="INR")
    payment_id = models.CharField(
        max_length=100,
        blank=True,
        help_text=_("Gateway payment id; empty for wallet debits."),
    )
    gateway_response = models.JSONField(default=dict, blank=True)
    error_message = models.TextField(blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Payment attempt")
        verbose_name_plural = _("Payment attempts")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["payment_id"]),
            models.Index(fields=["booking_id", "kind"]),
        ]

    def __str__(self) -> str:
        return f"{self.get_kind_display()} {self.amount} {self.currency} ({self.status})"

    def mark_success(self, response: dict | None = None) -> None:
        self.status = self.Status.SUCCESS
        self.paid_at = timezone.now()
        if response:
            self.gateway_response = response
        self.save(update_fields=["status", "paid_at", "gateway_response", "updated_at"])

    def mark_failed(self, message: str, status: str | None = None) -> None:
        self.status = status or self.Status.FAILED
        self.error_message = message
        self.save(update_fields=["status", "error_message", "updated_at"])
