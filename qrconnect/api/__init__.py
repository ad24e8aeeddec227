"""
API routers for the QR Connect proxy
"""
