class DashboardError(Exception):
    """Base class for every error raised by dashtiles."""
    pass


class InputError(DashboardError, ValueError):
    """Raised for invalid caller input, e.g. an empty phase table or an unknown counter operation."""
    pass


class StorageError(DashboardError):
    """Raised when the key-value slot cannot be read or written."""
    pass


class ProviderError(DashboardError):
    """Raised when an external provider (weather, phase table) fails or returns junk."""
    pass


class WidgetNotFoundError(DashboardError, LookupError):
    """Raised when no widget carries the requested id."""
    pass
