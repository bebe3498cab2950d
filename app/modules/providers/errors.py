"""Backend registry exceptions."""


class BackendRegistryError(Exception):
    """Base exception for backend registry errors.

    Example:
        try:
            backend = create_backend(settings.providers.backend_kind)
        except BackendRegistryError as e:
            logger.error("backend_registry_error", error=str(e))
    """


class BackendNotFoundError(BackendRegistryError):
    """Raised when no backend is registered for the requested kind.

    Example:
        >>> create_backend("azure")
        Traceback (most recent call last):
        ...
        BackendNotFoundError: Backend 'azure' not registered (known: aws, firebase, local)
    """


class BackendAlreadyRegisteredError(BackendRegistryError):
    """Raised when two backend classes register the same kind."""
