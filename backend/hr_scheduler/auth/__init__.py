"""Calendar credentials per manager account."""

from .oauth import credential_store, CredentialStore

__all__ = ["credential_store", "CredentialStore"]
