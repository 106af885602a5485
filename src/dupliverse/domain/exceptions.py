"""Exceptions raised by the profile sync store."""


class ProfileSyncError(RuntimeError):
    """Base class for profile sync failures."""


class PreconditionError(ProfileSyncError):
    """Raised when an operation needs a session or profile that is not resident."""


class RemoteFetchError(ProfileSyncError):
    """Raised when the profile could not be fetched from the remote store."""


class CreateOnFirstLoginError(RemoteFetchError):
    """Raised when the first-login profile insert fails."""


class RemoteUpdateError(ProfileSyncError):
    """Raised when the remote store rejects a profile update."""
