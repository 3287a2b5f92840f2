"""
PhysLab - Physics exercise progress tracking.

Tracks how far each student has gotten through assignments and
collections, enforces completion rules, and gates classwork by network
location.
"""

__version__ = "0.1.0"
