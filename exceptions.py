"""Error taxonomy for the control file editor."""


class ControlEditorError(Exception):
    """Base class for all editor failures."""


class DecodeError(ControlEditorError, ValueError):
    """The input control file cannot be decoded."""


class UnsupportedControlFileError(DecodeError):
    """Too short, or pg_control_version is not the supported one."""


class InvalidSegmentSizeError(DecodeError):
    """WAL segment size is not a power of two between 1 MiB and 1 GiB.

    Raised both when decoding a stored size and when an override asks for one.
    """


class InvalidWalFileNameError(ControlEditorError, ValueError):
    pass


class OverrideError(ControlEditorError, ValueError):
    """A requested field override is not allowed."""


class InvalidOidError(OverrideError):
    pass


class InvalidTransactionIdError(OverrideError):
    pass


class InvalidEpochError(OverrideError):
    pass


class InvalidMultiTransactionIdError(OverrideError):
    pass


class InvalidOffsetError(OverrideError):
    pass


class MaterializeError(ControlEditorError, OSError):
    """The output data directory or control file could not be written."""
