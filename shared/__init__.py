"""
Shared kernel

Value objects, domain events, the unit of work and the clock used by the
booking apps.
"""
