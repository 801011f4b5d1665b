"""
Core modules for EcoCharge.

This package contains the session derivations, the input form
validation, and the in-memory application state.
"""
