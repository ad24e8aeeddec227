"""
Client for the local QR Connect proxy.
"""
from .api import ProxyAPIClient, map_instance_status

__all__ = [
    'ProxyAPIClient',
    'map_instance_status',
]
