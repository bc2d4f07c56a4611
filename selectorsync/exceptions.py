"""Exceptions raised by the selector runtime itself.

Errors raised by user selectors, equality functions or the upstream store
are never wrapped; they reach the caller unchanged.
"""


class InstanceClosedError(Exception):
    """Raised when subscribing to a selector instance that has been closed.

    A closed instance has released its upstream subscription and will never
    notify again, so a new subscriber would silently miss every change.
    """

    pass
