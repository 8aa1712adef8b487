"""Override engine and command line front end for pg_control_editor."""

from editor.overrides import apply_overrides, validate_request
from editor.pipeline import edit_control_file

__all__ = [
    "apply_overrides",
    "edit_control_file",
    "validate_request",
]
