"""Bookings app package.

This app encapsulates the booking core: the allocation engine that turns a
venue's catalog into single or group selections, pricing, availability
checks against the cafe backend, and the booking lifecycle from payment to
session end, extension or cancellation. The cafe backend stays the source
of truth; a local mirror keeps what the customer last saw.
"""
