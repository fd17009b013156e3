"""
Dependency Injection Container.
"""

from .clinic import ClinicContainer

__all__ = ["ClinicContainer"]
