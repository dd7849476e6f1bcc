from typing import List, Optional


class ConsoleError(Exception):
    """Base class for every recoverable console failure."""


class ValidationError(ConsoleError):
    """Operator input was rejected before any store write."""


class IllegalTransitionError(ConsoleError):
    def __init__(self, entity: str, state: Optional[str], event: str):
        self.entity = entity
        self.state = state
        self.event = event
        super().__init__(f"Cannot {event} {entity} in state '{state or 'unknown'}'.")


class StoreWriteError(ConsoleError):
    """A store write failed; the next snapshot remains the source of truth."""


class PartialTransferError(ConsoleError):
    """A transfer stopped after creating the owned pet but before finishing."""

    def __init__(self, attempt_id: str, completed: List[str], remaining: List[str], cause: Optional[Exception] = None):
        self.attempt_id = attempt_id
        self.completed = list(completed)
        self.remaining = list(remaining)
        self.cause = cause
        super().__init__(
            f"Transfer {attempt_id} incomplete: done={','.join(completed) or '-'} "
            f"pending={','.join(remaining) or '-'}"
        )


class SubscriptionError(ConsoleError):
    def __init__(self, collection: str, message: str):
        self.collection = collection
        super().__init__(f"Subscription to '{collection}' failed: {message}")


class DecodeError(ConsoleError):
    def __init__(self, collection: str, doc_id: Optional[str], message: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"Rejected {collection}/{doc_id}: {message}")


class NotFoundError(ConsoleError):
    def __init__(self, entity: str, doc_id: str):
        self.entity = entity
        self.doc_id = doc_id
        super().__init__(f"No {entity} with id {doc_id}.")
