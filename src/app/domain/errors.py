from __future__ import annotations


class ContentError(Exception):
    pass


class ValidationError(ContentError):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class AuthorizationError(ContentError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundError(ContentError):
    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class TagInUseError(ContentError):
    def __init__(self, tag_id: str, usage: int):
        super().__init__("Cannot delete tag that is being used")
        self.tag_id = tag_id
        self.usage = usage


class InvalidTransitionError(ContentError):
    def __init__(self, entity_id: str, current: str, requested: str):
        super().__init__(f"Cannot move {entity_id} from {current} to {requested}")
        self.entity_id = entity_id
        self.current = current
        self.requested = requested


class UpstreamError(ContentError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Upstream error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class StorageError(ContentError):
    pass
