"""
Errors raised by the upload pipeline.

Every error carries a client-safe message and, optionally, the underlying
cause. Only the message and status code ever reach the HTTP response; the
cause is for the logs.
"""


class PipelineError(Exception):
    status_code: int = 500

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class ClientInputError(PipelineError):
    status_code = 400


class UploadTooLargeError(ClientInputError):
    status_code = 413


class UnsupportedMediaTypeError(ClientInputError):
    status_code = 415


class UnauthorizedError(PipelineError):
    status_code = 401


class ServerSideError(PipelineError):
    status_code = 500


class ProbeError(ServerSideError):
    pass


class RemuxError(ServerSideError):
    pass


class StorageUploadError(ServerSideError):
    pass


class VideoNotFoundError(ClientInputError):
    pass
