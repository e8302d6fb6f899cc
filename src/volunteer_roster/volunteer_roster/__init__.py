"""Volunteer Roster package.

This package is organized by feature modules (events, attendance, dashboard, ...)
with a thin Flask controller layer and service/repository layers underneath.
"""
