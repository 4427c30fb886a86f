"""Finances app package.

Settles payment obligations owed on bookings: the initial booking total and
venue-initiated extensions. Two rails are supported: an immediate wallet
debit and an online gateway order that settles once the gateway callback is
verified (asynchronously, through a Celery task). Wallet top-ups use the
same gateway flow.
"""
