"""Upload a whole folder to a Claude.ai project using a copied cURL request."""
from .api import UploadClient
from .curl import RequestTemplate, parse_curl
from .errors import (
    FileReadError,
    FolderAccessError,
    NetworkError,
    ParseError,
    RemoteRejection,
    SessionError,
    UploaderError,
)
from .files import CandidateFile, FileEnumerator
from .ignore import IgnoreFilter
from .models import Outcome, Progress, SessionState, UploadResult
from .session import Uploader, UploadSession

__version__ = '0.1.0'
