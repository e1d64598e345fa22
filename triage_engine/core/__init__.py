"""
Core domain types for the triage engine: enums, models and exceptions.
"""
