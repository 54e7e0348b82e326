"""
Reservation slot-allocation engine.

Decides whether a (date, time, staff, service) request can become a
confirmed reservation, assigns staff when none is requested, and keeps
concurrent requests from double-booking a staff member or the unassigned
pool.
"""

__version__ = "0.1.0"
