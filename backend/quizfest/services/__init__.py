"""
Service layer: rate limiting, second factor, redaction and export.
"""
