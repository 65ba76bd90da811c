"""Domain Services.

This package contains domain services that orchestrate the mapping engine
without infrastructure dependencies.
"""

from src.domain.services.form_session import FormSession

__all__ = ['FormSession']
