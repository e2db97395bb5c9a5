"""Bookings app package.

This app encapsulates the booking domain: availability over half-open
periods, per-kind rate calculation, the booking orchestrator with its
payment intent, and the status transition guard. Overbooking is
prevented by a conditional insert that re-checks capacity under a row
lock on the resource.
"""
