"""
Shared service helpers.
"""
