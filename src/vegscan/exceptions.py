"""vegscan exception hierarchy.

All exceptions follow a three-part message pattern: what failed,
likely cause, and suggested fix.
"""

from __future__ import annotations


class VegScanError(Exception):
    """Base exception for all vegscan errors.

    Args:
        what: Description of what failed.
        cause: Likely cause of the failure.
        fix: Suggested action to resolve the issue.

    Example:
        >>> raise VegScanError(
        ...     what="Analysis failed",
        ...     cause="Unexpected internal state",
        ...     fix="Please report this issue",
        ... )
    """

    def __init__(
        self,
        what: str,
        cause: str = "",
        fix: str = "",
    ) -> None:
        """Initialize with structured error context.

        Args:
            what: Description of what failed.
            cause: Likely cause of the failure.
            fix: Suggested action to resolve the issue.
        """
        self.what = what
        self.cause = cause
        self.fix = fix
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Build the multi-line error message from parts.

        Returns:
            Formatted message with optional Cause and Fix lines.
        """
        parts = [self.what]
        if self.cause:
            parts.append(f"Cause: {self.cause}")
        if self.fix:
            parts.append(f"Fix: {self.fix}")
        return "\n".join(parts)


class InvalidInputError(VegScanError):
    """Raised when a pixel buffer, threshold, or index selection is invalid.

    Example:
        >>> raise InvalidInputError(
        ...     what="Cannot analyze image",
        ...     cause="Pixel buffer is empty (0 pixels)",
        ...     fix="Pass an image with at least one pixel",
        ... )
    """


class DecodeError(VegScanError):
    """Raised when an image file cannot be decoded into a pixel buffer.

    Example:
        >>> raise DecodeError(
        ...     what="Cannot read image plot_07.jpg",
        ...     cause="Unsupported file format",
        ...     fix="Convert the image to PNG, JPEG or GeoTIFF",
        ... )
    """


class BatchAbortedError(VegScanError):
    """Raised when one image fails and the whole batch run is abandoned.

    The original exception is chained as ``__cause__``. No partial
    results are returned.

    Args:
        what: Description of what failed.
        cause: Likely cause of the failure.
        fix: Suggested action to resolve the issue.
        filename: Name of the image that failed.
        index: Position of that image in the batch input.
    """

    def __init__(
        self,
        what: str,
        cause: str = "",
        fix: str = "",
        *,
        filename: str = "",
        index: int = -1,
    ) -> None:
        self.filename = filename
        self.index = index
        super().__init__(what=what, cause=cause, fix=fix)


class ConfigurationError(VegScanError):
    """Raised for invalid analysis configuration.

    Example:
        >>> raise ConfigurationError(
        ...     what="Invalid configuration",
        ...     cause="threshold_value must be within [-1, 1]",
        ...     fix="Pass a threshold between -1 and 1",
        ... )
    """
