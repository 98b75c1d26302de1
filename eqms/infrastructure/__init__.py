"""
Infrastructure Layer
=====================

Low-level technical concerns shared by every bounded context:
- Database engine and session lifecycle
"""
