class GCSError(Exception):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        reason: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.reason = reason

    def __str__(self) -> str:
        if self.status_code and self.reason:
            return f"{self.reason} ({self.status_code}): {self.message}"
        elif self.status_code:
            return f"HTTP {self.status_code}: {self.message}"
        return self.message


class ValidationError(GCSError):
    """Invalid arguments to a signing call, such as an out of range duration."""


class KeyParseError(GCSError):
    """The service account private key is malformed or not an RSA key."""


class SigningError(GCSError):
    """The RSA signing primitive failed for an otherwise valid key."""


class GCSClientError(GCSError):
    pass


class GCSServerError(GCSError):
    pass


class GCSNotFoundError(GCSClientError):
    def __init__(self, message: str = "The specified resource was not found"):
        super().__init__(message, status_code=404, reason="notFound")


class GCSAccessDeniedError(GCSClientError):
    def __init__(self, message: str = "Access denied", status_code: int = 403):
        super().__init__(message, status_code=status_code, reason="forbidden")


class GCSInvalidRequestError(GCSClientError):
    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, status_code=400, reason="invalid")
