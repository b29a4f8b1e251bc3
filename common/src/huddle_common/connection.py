"""Transport-level definitions shared by huddle components."""


class HuddleTransportError(Exception):
    """Error thrown when a frame cannot be handed to the transport."""

    pass
