"""Exceptions raised while talking to the router or the cluster."""


class RouterError(Exception):
    """Base class for every failure reported by a router backend."""


class AuthError(RouterError):
    """Login failed: no nonce on the login page, or the login request failed."""


class ParseError(RouterError):
    """
    An expected element (forwards table, nonce) is missing from a page.

    Usually means the session is no longer authenticated, or the firmware
    renders the page differently than expected.
    """


class NotFoundError(RouterError):
    """A delete was requested for a service name the router does not list."""


class RemoteRejection(RouterError):
    """The result page after a submission carries the router's error banner."""


class TransportError(RouterError):
    """Network-level failure of a request, or a request cancelled before it started."""


class WatchError(Exception):
    """The Kubernetes service listing or watch could not be established."""
