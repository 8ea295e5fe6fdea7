class UploaderError(Exception):
    """Base class for every error raised by claude-folder-uploader"""


class ParseError(UploaderError):
    """The pasted cURL command could not be turned into a request template."""

    def __init__(self, element, message):
        super().__init__(message)
        self.element = element


class FolderAccessError(UploaderError):
    """The selected folder is missing or unreadable."""


class FileReadError(UploaderError):
    """A single file could not be read."""


class NetworkError(UploaderError):
    """Connection failure or timeout while talking to the endpoint."""


class RemoteRejection(UploaderError):
    """The endpoint answered with a non-2xx status."""

    def __init__(self, status_code, body, message=None):
        super().__init__(message or f"Upload failed with status: {status_code}. Response: {body}")
        self.status_code = status_code
        self.body = body

    @property
    def auth_failure(self):
        return self.status_code in (401, 403)


class SessionError(UploaderError):
    """An upload session was used outside its lifecycle."""
