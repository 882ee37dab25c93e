# -*- coding: utf-8 -*-
"""
Remote path materialization for Nuxeo sync.

Given a remote path, ensure every ancestor segment exists as a folder-type
document, creating the missing ones in root-to-leaf order. Segments that
already exist are skipped, so running the same materialization twice is safe.

This module does no console output. Callers report the returned outcomes.

Example:
    outcomes = materialize_path(client, '/default-domain/workspaces/2024/Reports')
    for outcome in outcomes:
        print(outcome.path, outcome.status)
"""

from collections import namedtuple

from .exceptions import DocumentNotFound, MalformedPathError, MaterializationCancelled, MaterializationError, TransportFailure

# Existence check results
PRESENT = 'present'
ABSENT = 'absent'

# Per-segment outcomes
CREATED = 'created'
SKIPPED_EXISTS = 'skipped_exists'

ROOT_PATH = '/'
DEFAULT_FOLDER_TYPE = 'Folder'

ExistenceResult = namedtuple('ExistenceResult', ['status', 'document'])

CreationRequest = namedtuple('CreationRequest', ['doc_type', 'name', 'parent_path', 'properties'])


class CreationOutcome(namedtuple('CreationOutcome', ['path', 'status', 'document'])):
    """Result of processing one segment of a path chain."""

    __slots__ = ()

    @property
    def created(self):
        return self.status == CREATED


def decompose_path(path):
    """
    Decompose a remote path into its ancestor chain, root-most first.

    One leading and one trailing slash are stripped before splitting on '/'.

    Args:
        path (str): Remote path (e.g., '/a/b/c', 'a/b/c/')

    Returns:
        list: Ancestor paths, e.g. ['/a', '/a/b', '/a/b/c']. Empty for '' or '/'.

    Examples:
        >>> decompose_path('/a/b/c')
        ['/a', '/a/b', '/a/b/c']
        >>> decompose_path('//')
        []
    """
    stripped = path
    if stripped.startswith('/'):
        stripped = stripped[1:]
    if stripped.endswith('/'):
        stripped = stripped[:-1]

    components = [component for component in stripped.split('/') if component]
    if not components:
        return []

    chain = []
    current = ''
    for component in components:
        current = f"{current}/{component}"
        chain.append(current)
    return chain


def check_exists(client, path):
    """
    Check whether a document exists at a remote path.

    Performs exactly one request.

    Args:
        client: Repository client providing fetch_by_path()
        path (str): Remote path to check

    Returns:
        ExistenceResult: PRESENT with the document entity, or ABSENT

    Raises:
        TransportFailure: On anything other than a not-found response
    """
    try:
        document = client.fetch_by_path(path)
    except DocumentNotFound:
        return ExistenceResult(ABSENT, None)
    return ExistenceResult(PRESENT, document)


def build_creation_request(chain, index, doc_type):
    """Creation request for chain[index]; its parent is the previous segment or the root."""
    path = chain[index]
    name = path.rsplit('/', 1)[-1]
    parent_path = chain[index - 1] if index > 0 else ROOT_PATH
    return CreationRequest(doc_type, name, parent_path, {'dc:title': name})


def materialize(client, chain, doc_type=DEFAULT_FOLDER_TYPE, force=False, cancel_event=None):
    """
    Ensure every path in a chain exists, creating missing segments in order.

    Segments are processed one at a time: a child is never attempted before
    its parent has been created or found. With force, the leaf is re-created
    even if present; present intermediate segments are always skipped.

    Args:
        client: Repository client providing fetch_by_path() and create_document()
        chain (list): Output of decompose_path()
        doc_type (str): Document type for created segments
        force (bool): Re-create the leaf when it already exists
        cancel_event (threading.Event): Checked between segments; abort when set

    Returns:
        list: One CreationOutcome per segment

    Raises:
        MaterializationCancelled: cancel_event was set before a segment started
        MaterializationError: A request failed; .outcomes holds the completed segments
    """
    outcomes = []

    for index, path in enumerate(chain):
        if cancel_event is not None and cancel_event.is_set():
            raise MaterializationCancelled(f"Materialization cancelled before {path}",
                                           path=path, outcomes=outcomes)

        is_leaf = index == len(chain) - 1
        try:
            existence = check_exists(client, path)
            if existence.status == PRESENT and not (force and is_leaf):
                outcomes.append(CreationOutcome(path, SKIPPED_EXISTS, existence.document))
                continue

            request = build_creation_request(chain, index, doc_type)
            document = client.create_document(request.parent_path, request.name,
                                              request.doc_type, request.properties)
        except TransportFailure as e:
            raise MaterializationError(f"Failed to materialize {path}: {e}",
                                       path=path, outcomes=outcomes, cause=e) from e

        outcomes.append(CreationOutcome(path, CREATED, document))

    return outcomes


def materialize_path(client, path, doc_type=DEFAULT_FOLDER_TYPE, force=False, cancel_event=None):
    """
    Validate, decompose and materialize a remote path.

    Args:
        client: Repository client
        path (str): Remote path to materialize
        doc_type (str): Document type for created segments (default: 'Folder')
        force (bool): Re-create the leaf when it already exists
        cancel_event (threading.Event): Optional cancellation signal

    Returns:
        list: CreationOutcome records, empty for an all-slash or empty path

    Raises:
        MalformedPathError: path is not a string or contains empty or relative segments
        MaterializationError: See materialize()
    """
    validate_remote_path(path)
    return materialize(client, decompose_path(path), doc_type=doc_type, force=force,
                       cancel_event=cancel_event)


def validate_remote_path(path):
    """
    Reject remote paths that cannot be materialized.

    Empty and all-slash paths are valid (they decompose to nothing). Paths with
    empty inner segments ('/a//b') or '.'/'..' segments are rejected.

    Raises:
        MalformedPathError: If the path is unusable
    """
    if not isinstance(path, str):
        raise MalformedPathError(f"Remote path must be a string, got {type(path).__name__}")
    if path.strip('/') == '':
        return
    if '\x00' in path:
        raise MalformedPathError(f"Remote path contains a NUL character: {path!r}")

    inner = path[1:] if path.startswith('/') else path
    inner = inner[:-1] if inner.endswith('/') else inner
    for segment in inner.split('/'):
        if segment == '':
            raise MalformedPathError(f"Remote path has an empty segment: {path!r}")
        if segment in ('.', '..'):
            raise MalformedPathError(f"Remote path has a relative segment: {path!r}")
