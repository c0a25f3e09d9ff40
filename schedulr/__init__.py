"""
Schedulr - conflict detection and smart slot suggestions for calendars.
"""

__version__ = "0.1.0"
