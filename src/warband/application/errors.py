class ProviderError(RuntimeError):
    """The content provider could not produce a usable reply."""


class ProviderRateLimitError(ProviderError):
    """The provider refused the request because a quota was exhausted (HTTP 429)."""


class MalformedPayloadError(ProviderError):
    """The provider answered, but the reply failed structural validation."""


class SnapshotError(ValueError):
    """A persisted snapshot is missing required fields or cannot be decoded."""


class GameBusyError(RuntimeError):
    """Another provider-backed action is still in flight."""
