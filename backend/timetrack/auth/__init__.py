"""
Token verification and revocation.
"""
