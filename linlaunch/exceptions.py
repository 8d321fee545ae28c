"""Custom exception hierarchy for linlaunch."""


class LinlaunchError(Exception):
    """Base for all linlaunch errors."""


class RootfsError(LinlaunchError):
    """A foreign root filesystem is missing something needed to launch."""


class BinaryNotFoundError(RootfsError):
    """The requested binary does not exist inside the root."""


class LinkerNotFoundError(RootfsError):
    """No known dynamic linker was found inside the root."""
