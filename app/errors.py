"""Exceptions raised by the query gateway."""


class GatewayError(Exception):
    pass


class StoreError(GatewayError):
    """The store could not run a statement. The driver error is the __cause__."""

    def __init__(self, operation: str, message: str = "store query failed"):
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class DuplicateEmailError(GatewayError):
    def __init__(self, email: str):
        super().__init__(f"Email already registered: {email}")
        self.email = email


class UnknownOwnerError(GatewayError):
    def __init__(self, owner_id: int):
        super().__init__(f"Owner does not exist: {owner_id}")
        self.owner_id = owner_id
