"""Business logic services.

This package contains the workflow graph services.
"""
