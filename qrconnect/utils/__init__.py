"""
Utility modules for QR Connect.
"""
from qrconnect.utils.periodic import PeriodicTask

__all__ = [
    "PeriodicTask",
]
