"""Custom exceptions for credentials."""


class CredentialsError(Exception):
    """Base exception for credential errors."""


class CredentialsNotFoundError(CredentialsError):
    """No username/password pair is available for a credentials id."""
