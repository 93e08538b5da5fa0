"""Domain-specific errors for remotectl."""


class RemoteCtlError(Exception):
    """Base error for remotectl."""


class ConfigValidationError(RemoteCtlError):
    """Raised when a card or key file does not conform to schema or semantics."""


class ConfigLoadError(RemoteCtlError):
    """Raised when reading card or key sources fails."""


class ElementNotFoundError(RemoteCtlError):
    """Raised when a named element is neither a custom nor a default key/source."""


class TemplateRenderError(RemoteCtlError):
    """Raised when the expression evaluator fails on a template string."""


class StateStoreError(RemoteCtlError):
    """Raised when a state snapshot cannot be read."""


class ServiceCallError(RemoteCtlError):
    """Raised when a service invoker rejects a call."""
