"""
Auth module - Identity provider abstraction and process-wide session state.
"""

from .base import BaseIdentityProvider

__all__ = ["BaseIdentityProvider", "create_identity_provider"]


def create_identity_provider(**kwargs) -> BaseIdentityProvider:
    """Create the configured identity provider (Supabase Auth)."""
    from .supabase import SupabaseAuthProvider

    return SupabaseAuthProvider(**kwargs)
