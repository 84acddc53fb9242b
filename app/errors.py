# app/errors.py
# ────────────────────────────────────────────
# Failure types raised by the verifier and the stores.
# Routes translate them into HTTPException.
# ────────────────────────────────────────────


class WebhookError(Exception):
    """Base class for everything the receiver raises on purpose."""


class SignatureMissing(WebhookError):
    pass


class SignatureMismatch(WebhookError):
    pass


class PayloadAbsent(WebhookError):
    pass


class StorageWriteFailure(WebhookError):
    def __init__(self, path, cause: Exception):
        super().__init__(f"Failed to write {path}: {cause}")
        self.path = path
        self.cause = cause


class InvalidFilename(WebhookError, ValueError):
    pass
