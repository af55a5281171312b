"""Bookings app package.

Availability checks, pricing and the reservation lifecycle for the fleet.
Every commit locks the reserved unit and claims one row per occupied
night and slot; a unique constraint on those claims turns a lost race
into a clean ALREADY_BOOKED rejection.
"""
