class ConfigurationError(Exception):
    """Job configuration is unusable. Never retried."""


class AllocationExhausted(Exception):
    """No free build log path was found within the attempt budget."""


class DeliveryError(Exception):
    """A check run request kept failing after every attempt."""
