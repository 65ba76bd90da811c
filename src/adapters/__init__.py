"""Adapters layer for Questionnaire Bridge.

This module contains adapters that interface with external systems.
Adapters implement Port interfaces defined in the domain layer and convert
between wire formats and domain models.
"""
