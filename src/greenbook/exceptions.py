class GreenbookError(Exception):
    """Base exception for GreenBook errors."""
    pass

class ConfigError(GreenbookError):
    """Configuration loading specific errors."""
    pass

class DataSourceError(GreenbookError):
    """Snapshot loading or remote analysis payload errors."""
    pass

class NotFoundError(GreenbookError):
    """A referenced unit, user, event or AAR does not exist."""
    pass

class HierarchyError(GreenbookError):
    """A parent assignment would break the unit tree (self-parent or cycle)."""
    pass
