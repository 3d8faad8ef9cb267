class ProviderError(Exception):
    """Base error; carries the HTTP status and the public message."""

    status_code = 500
    message = "Internal error."

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationError(ProviderError):
    status_code = 400
    message = "Invalid request parameters."


class NotFoundError(ProviderError):
    status_code = 404
    message = "Payment not found."


class AlreadyExpiredError(ProviderError):
    status_code = 400
    message = "Payment expired."


class AlreadyPaidError(ProviderError):
    status_code = 400
    message = "Payment already paid."


class CodeGenerationError(ProviderError):
    status_code = 500
    message = "Could not generate payment code."


class StorageError(ProviderError):
    status_code = 500
    message = "Could not persist payments."


class NotificationError(ProviderError):
    # Logged by the notifier, never surfaced to a caller
    message = "Webhook delivery failed."


class MissingTokenError(ProviderError):
    status_code = 401
    message = "Missing API token."


class InvalidTokenError(ProviderError):
    status_code = 403
    message = "Invalid API token."
