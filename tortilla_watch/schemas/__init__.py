"""
Request/response schemas package
"""
