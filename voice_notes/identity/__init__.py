from .firebase_identity_provider import FirebaseIdentityProvider
from .identity_provider import IdentityProvider, StaticIdentityProvider

__all__ = ["IdentityProvider", "StaticIdentityProvider", "FirebaseIdentityProvider"]
