"""
Tortilla Watch: crowd-sourced tortilla availability, ratings and comments.
"""
__version__ = "1.0.0"
