"""Errors reported by the cluster API and by the helpers built on it."""


class ApiError(Exception):
    """An error reported by the cluster API or by an operation against it."""


class NotFoundError(ApiError):
    """The requested object does not exist."""


class AlreadyExistsError(ApiError):
    """An object with the same name already exists."""


class ConflictError(ApiError):
    """The object was modified concurrently."""


class InvalidError(ApiError):
    """The object was rejected as invalid."""