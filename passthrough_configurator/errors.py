"""Exceptions raised by the passthrough configuration steps."""


class PassthroughError(Exception):
    """Base class for failures that abort the configuration run."""

    pass


class PreconditionError(PassthroughError):
    """Missing privileges, tools or files required before any change."""

    pass


class DetectionError(PassthroughError):
    """Unsupported CPU vendor or no suitable GPU on the host."""

    pass


class InvalidReferenceError(PassthroughError):
    """A referenced object (such as a VM ID) does not exist."""

    pass


class RebuildError(PassthroughError):
    """Regenerating the initramfs or bootloader configuration failed."""

    pass


class UserDeclined(Exception):
    """Raised when the operator declines a step the run cannot continue without."""

    pass
