"""
Custom exception hierarchy for the takeout organizer.

Every per-file failure is local: the run loop catches these, records
them in the bad-file log and moves on. Only IndexLogError aborts a run.
"""
from enum import Enum


class ErrorKind(str, Enum):
    """Tags written to the bad-file log."""
    HASH = "HashComputationFailure"
    MOVE = "MoveOrCopyFailure"
    SIDECAR = "SidecarAssociationFailure"
    METADATA = "MetadataParseFailure"


class OrganizerError(Exception):
    """Base exception for all takeout organizer errors."""
    pass


class HashComputationError(OrganizerError):
    """Raised when file bytes cannot be read for hashing."""
    pass


class FileOperationError(OrganizerError):
    """Raised when a move/copy still fails after all retries."""
    pass


class SidecarAssociationError(OrganizerError):
    """Raised when the sidecar lookup itself fails (not when none exists)."""
    pass


class MetadataParseError(OrganizerError):
    """Raised when a sidecar document is malformed or truncated."""
    pass


class IndexLogError(OrganizerError):
    """Raised when the index log cannot be opened or appended to."""
    pass


class IndexIntegrityError(OrganizerError):
    """Raised on Insert of a known hash or Update of an unknown one."""
    pass
