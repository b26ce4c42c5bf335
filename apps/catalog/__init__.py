"""Catalog app package.

Services offered by the shop. A service's duration determines the length
of every appointment booked for it.
"""
