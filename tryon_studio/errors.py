"""Error types shared across the studio."""


class StudioError(Exception):
    """Base class for recoverable studio failures."""


class SynthesisError(StudioError):
    """The image synthesis service could not produce an image."""


class StorageError(StudioError):
    """Reading or writing the persistent store failed."""


def friendly_error_message(error: BaseException, context: str) -> str:
    """Build a message suitable for showing to the user.

    Args:
        error: The failure that was caught
        context: What the user was trying to do, e.g. "Failed to change pose"
    """
    reason = str(error).strip() or type(error).__name__
    if "unsupported mime type" in reason.lower():
        return f"{context}. The image format is not supported. Please use PNG, JPEG or WEBP."
    return f"{context}. {reason}"
