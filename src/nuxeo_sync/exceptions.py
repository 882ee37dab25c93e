# -*- coding: utf-8 -*-
"""
Exception types for Nuxeo sync.

Not-found and already-exists conditions are part of normal control flow and
are converted into outcome records by the materializer. Everything else is
raised to the caller.
"""


class NuxeoSyncError(Exception):
    """Base class for all errors raised by nuxeo_sync"""


class ConfigurationError(NuxeoSyncError, ValueError):
    """Invalid or missing configuration value"""


class MalformedPathError(NuxeoSyncError, ValueError):
    """Remote path is empty or cannot be parsed; rejected before any request"""


class TransportFailure(NuxeoSyncError):
    """
    A request to the Nuxeo server failed.

    Covers network errors, authentication errors and any unexpected HTTP
    status. Always fatal to the operation that issued the request.

    Attributes:
        status (int): HTTP status code, or None for network-level failures
        path (str): Remote document path or URL the request was about
        detail (str): Server message or exception text
        code (str): Nuxeo exception class name when the server reported one
    """

    def __init__(self, message, status=None, path=None, detail=None, code=None):
        super().__init__(message)
        self.status = status
        self.path = path
        self.detail = detail
        self.code = code

    def __str__(self):
        text = super().__str__()
        if self.status is not None:
            text = f"{text} (HTTP {self.status})"
        if self.path:
            text = f"{text} [{self.path}]"
        return text


class DocumentNotFound(TransportFailure):
    """The server reported that no document exists at the requested path"""


class NotFolderishError(NuxeoSyncError):
    """Upload destination exists but cannot contain children"""


class DocumentExistsError(NuxeoSyncError):
    """Target document already exists and force was not requested"""

    def __init__(self, path):
        super().__init__(f"{path} exists on nuxeo; use `-f` to force")
        self.path = path


class MaterializationError(NuxeoSyncError):
    """
    Path materialization stopped before reaching the leaf.

    Documents created before the failing segment stay on the server.

    Attributes:
        path (str): Segment that was being processed
        outcomes (list): CreationOutcome records for the segments that completed
        cause (Exception): Underlying TransportFailure, if any
    """

    def __init__(self, message, path=None, outcomes=None, cause=None):
        super().__init__(message)
        self.path = path
        self.outcomes = list(outcomes or [])
        self.cause = cause


class MaterializationCancelled(MaterializationError):
    """Cancellation was requested between two segment steps"""
