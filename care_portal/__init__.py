"""
Care Portal

A FastAPI-based healthcare appointment portal: patients book appointments
with approved doctors, doctors run them through their lifecycle, and admins
moderate accounts.
"""

__version__ = "1.0.0"
