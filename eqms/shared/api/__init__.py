"""
Shared API Layer
================

HTTP concerns common to every router: middleware, exception handlers and
bearer-token authentication.
"""
