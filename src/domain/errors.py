"""Domain integrity errors

Raised for impossible states. Expected business failures are returned
as ``libs.result.Error`` values by the use cases instead.
"""


class InvalidTransitionError(Exception):
    """Raised when an entity is moved to a status its state machine forbids"""

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Invalid {entity} transition: {current} -> {target}")
