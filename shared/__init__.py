"""
Shared Kernel

Base classes used by every booking context: entities, aggregates,
value objects, domain exceptions, the message bus and the unit of work.
"""
