"""
Exception hierarchy for modeflow.

All errors raised by the package derive from ModeflowError so that a
transport shell can catch one type at its boundary.
"""

from typing import Optional


class ModeflowError(Exception):
    """Base class for all modeflow errors."""


class ConfigValidationError(ModeflowError):
    """The workflow definition is structurally or referentially invalid.

    Always fatal at load time.

    Attributes:
        identifier: The mode, field or file the defect was found in
    """

    def __init__(self, message: str, identifier: Optional[str] = None):
        super().__init__(message)
        self.identifier = identifier


class StateCorruptionError(ModeflowError):
    """The persisted state file exists but cannot be parsed.

    Attributes:
        path: Location of the corrupted file
        details: Parser message describing the problem
    """

    def __init__(self, path: str, details: str):
        super().__init__(f"State file is corrupted: {path}: {details}")
        self.path = path
        self.details = details


class StatePersistenceError(ModeflowError):
    """Reading or writing the state file failed at the OS level."""

    def __init__(self, path: str, details: str):
        super().__init__(f"State file I/O failed: {path}: {details}")
        self.path = path
        self.details = details


class TransitionRejected(ModeflowError):
    """A requested mode change is not permitted.

    This is an expected outcome, not a fault. The message is meant to be
    shown to the requester verbatim.
    """

    @property
    def reason(self) -> str:
        return str(self)


class PermissionRuleMalformed(ModeflowError):
    """A permission rule string could not be parsed.

    Only raised inside the permission package; the matcher turns it
    into a non-match.
    """

    def __init__(self, rule: object, details: str):
        super().__init__(f"Malformed permission rule {rule!r}: {details}")
        self.rule = rule
