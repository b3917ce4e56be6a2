"""Domain-specific exceptions — framework-independent."""


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class ExportValidationError(Exception):
    """Raised when an export request is rejected (bad format/scope or too many records).

    The message is human-readable and safe to show to the caller.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)
