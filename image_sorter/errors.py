"""
Exception types raised by the image sorter.

Per-photo errors are recovered by the worker that processes the photo;
only FatalConfigError stops a run.
"""


class ImageSorterError(Exception):
    """Base exception for the application."""


class MetadataError(ImageSorterError):
    """Raised when an image file is corrupt or cannot be read."""


class GeoLookupError(ImageSorterError, LookupError):
    """Raised when the reverse geocoding service fails or times out."""


class DirectoryError(ImageSorterError):
    """Raised when a destination directory cannot be created."""


class CopyError(ImageSorterError):
    """Raised when copying a photo to its destination fails."""


class FatalConfigError(ImageSorterError):
    """Raised when the source or destination root is unusable."""
