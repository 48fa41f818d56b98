"""Exception types and precondition helpers shared by the public operations.

Every public function validates its inputs eagerly and fails before any
processing starts.  Callers can catch :class:`ValidationError` (or plain
:class:`ValueError`) for bad arguments and :class:`NotFoundError` (or
:class:`FileNotFoundError`) for missing input files.
"""

from __future__ import annotations

from typing import Any, Iterable


class ValidationError(ValueError):
    """Raised when a required input is missing or not usable."""


class NotFoundError(FileNotFoundError):
    """Raised when a referenced input file does not exist."""


class LabelResolutionError(ValidationError):
    """Raised when edit labels do not match any entry of the label list.

    Attributes
    ----------
    labels:
        Sorted list of the unmatched labels (as strings).
    """

    def __init__(self, labels: Iterable[Any], class_labels: Iterable[Any]):
        self.labels = sorted(str(label) for label in labels)
        known = ", ".join(str(label) for label in class_labels)
        super().__init__(
            f"Labels {self.labels} are not part of the class labels [{known}]."
        )


def require(condition: bool, message: str) -> None:
    """Raise :class:`ValidationError` with ``message`` unless ``condition`` holds."""

    if not condition:
        raise ValidationError(message)


def require_defined(value: Any, message: str) -> Any:
    """Return ``value`` or raise :class:`ValidationError` when it is ``None``."""

    require(value is not None, message)
    return value
