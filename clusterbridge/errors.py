"""Exception types raised by the cluster bridge."""


class BridgeError(Exception):
    """Base class for cluster bridge errors."""


class RadioConnectError(BridgeError):
    """The radio could not be discovered or dialed."""


class ClusterConnectError(BridgeError):
    """The cluster server could not be dialed."""


class SpotParseError(BridgeError, ValueError):
    """A spot line matched the spot grammar but a field was malformed."""
