"""Appointments app package.

The booking core of the barbershop: the appointment state machine,
interval arithmetic, the availability calculator and the booking engine
that keeps every barber's schedule free of overlaps under concurrent
requests. Writes to one barber are serialized by a per-barber lock plus
a row lock on the barber, and every booking decision is re-checked
inside that critical section.
"""
