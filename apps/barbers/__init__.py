"""Barbers app package.

Provider directory of the barbershop: barbers, their active flag and
weekly working hours. The booking core reads barbers through
``DjangoProviderDirectory`` and never writes to them.
"""
