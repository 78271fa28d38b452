"""Exception types raised by the menu core."""


class MenuMakerError(Exception):
    """Base class for every error raised by Menu Maker."""


class ValidationError(MenuMakerError):
    """User input was rejected; the form stays open with this message."""


class MenuLookupError(MenuMakerError, LookupError):
    """A referenced category, item or theme no longer exists."""


class PersistenceError(MenuMakerError):
    """Reading or writing a configuration file failed."""


class ProcessError(MenuMakerError):
    """An external command could not be started."""
