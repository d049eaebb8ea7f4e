"""
Usage errors raised synchronously by the discovery engine.
"""


class BeaconError(RuntimeError):
    """Base class for udpbeacon usage errors."""


class AlreadyReleasedError(BeaconError):
    def __init__(self, message: str = "beacon already released"):
        super().__init__(message)


class AlreadyRunningError(BeaconError):
    def __init__(self, message: str = "beacon is already active"):
        super().__init__(message)
