"""
API routers for Tortilla Watch.
"""
