"""Error taxonomy shared by services and the HTTP layer."""


class MoneyflowError(Exception):
    """Base exception for all moneyflow errors."""

    status_code = 500

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class InvalidInput(MoneyflowError):
    """Raised when a request is missing fields or carries invalid values."""

    status_code = 400


class AuthorizationError(MoneyflowError):
    """Raised when there is no authenticated identity."""

    status_code = 401

    def __init__(self, resource: str | None = None):
        super().__init__("not_authenticated")
        self.resource = resource


class NotFoundError(MoneyflowError):
    """Raised when a directly addressed entity does not exist for the user."""

    status_code = 404

    def __init__(self, resource: str, entity_id: str):
        super().__init__(f"{resource}_not_found")
        self.resource = resource
        self.entity_id = entity_id


class ConflictError(MoneyflowError):
    """Raised when a unique entity already exists."""

    status_code = 409


class StorageError(MoneyflowError):
    """Raised when a unit of work fails to commit."""

    status_code = 500

    def __init__(self, operation: str, message: str):
        super().__init__(message)
        self.operation = operation
