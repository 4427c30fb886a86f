"""Cafes app package.

Venue directory for the booking core: venues, their rooms and the
gaming systems inside them, normalised into per-type groups that the
allocation engine selects from.
"""
