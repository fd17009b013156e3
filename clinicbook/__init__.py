"""
clinicbook - Clinic appointment scheduling and billing consistency engine.
"""

__version__ = "0.1.0"
