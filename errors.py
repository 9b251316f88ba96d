class MonitorError(Exception):
    """Base class for anything that aborts a check run."""


class ConfigurationError(MonitorError):
    pass


class FetchError(MonitorError):
    def __init__(self, window, reason: str):
        self.window = window
        self.reason = reason
        super().__init__(f"fetch failed for {window.start} to {window.end}: {reason}")


class MalformedDataError(MonitorError):
    pass


class NotificationError(MonitorError):
    pass


class StoreError(MonitorError):
    pass
