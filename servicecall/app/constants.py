"""Constants shared across modules."""
from __future__ import annotations

from enum import Enum


class HTTP_METHOD:
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


SUPPORTED_METHODS = frozenset(
    {
        HTTP_METHOD.GET,
        HTTP_METHOD.POST,
        HTTP_METHOD.PUT,
        HTTP_METHOD.DELETE,
        HTTP_METHOD.PATCH,
        HTTP_METHOD.HEAD,
        HTTP_METHOD.OPTIONS,
    }
)


class HEADER:
    CONTENT_TYPE = "Content-Type"
    CONTENT_LENGTH = "Content-Length"
    CONTENT_ENCODING = "Content-Encoding"
    CONTENT_RANGE = "Content-Range"
    USER_AGENT = "User-Agent"
    LOCATION = "Location"
    RANGE = "Range"
    METHOD_OVERRIDE = "X-HTTP-Method-Override"
    UPLOAD_CONTENT_TYPE = "X-Upload-Content-Type"
    UPLOAD_CONTENT_LENGTH = "X-Upload-Content-Length"


class SUBSCRIPTION_HEADER:
    SUBSCRIBE = "X-Goog-Subscribe"
    CLIENT_TOKEN = "X-Goog-Client-Token"
    SUBSCRIPTION_ID = "X-Goog-Subscription-ID"
    TOPIC_ID = "X-Goog-Topic-ID"
    TOPIC_URI = "X-Goog-Topic-URI"


class ExecutionState(str, Enum):
    UNBUILT = "UNBUILT"
    BUILT = "BUILT"
    DISPATCHED = "DISPATCHED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


# Status code of a request that has not completed an execution.
NOT_EXECUTED_STATUS = -1

# Resumable upload chunks must be a multiple of 256 KiB.
UPLOAD_CHUNK_GRANULARITY = 256 * 1024
DEFAULT_UPLOAD_CHUNK_SIZE = 40 * UPLOAD_CHUNK_GRANULARITY
DEFAULT_DOWNLOAD_CHUNK_SIZE = 32 * 1024 * 1024

# "Resume Incomplete": server acknowledged a chunk and expects more.
RESUME_INCOMPLETE_STATUS = 308
