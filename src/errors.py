"""Error taxonomy shared by retrieval, decisions and planning."""


class WayfinderError(Exception):
    """Base error."""


class TransportError(WayfinderError):
    """A collaborator (model endpoint, store) could not be reached or failed."""


class StoreError(TransportError):
    """Persistence layer failure."""


class ParseError(WayfinderError):
    """Generated output was not parseable as JSON."""


class SchemaError(WayfinderError):
    """Parsed output did not match the required structure."""


class NotFoundError(WayfinderError):
    """Referenced entity does not exist."""


class InvalidStateError(WayfinderError):
    """Operation not allowed in the entity's current state."""
