"""
Appointment Scheduling Service

A FastAPI-based service that lets patients book time-slot appointments with
doctors and lets doctors approve, complete or cancel them, without
double-booking a slot.
"""

__version__ = "1.0.0"
