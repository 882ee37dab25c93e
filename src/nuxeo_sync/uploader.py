# -*- coding: utf-8 -*-
"""
Upload operations for Nuxeo sync.

This module handles all file upload operations including folder management,
new versions of existing documents and extra file attachments.

All uploads go through the Nuxeo batch upload API: a blob is sent to a batch,
then an automation operation consumes it.
"""

import os

from .exceptions import NotFolderishError, MaterializationError
from .file_handler import guess_mime_type
from .materializer import ABSENT, check_exists, materialize_path
from .utils import is_debug_enabled, is_folderish, join_remote_path, remote_basename, remote_parent

# Upload results
UPLOADED_NEW = 'new'
UPLOADED_VERSION = 'versioned'
SKIPPED_EXISTING = 'skipped'


def report_outcomes(outcomes, stats=None):
    """
    Print materialization outcomes and count them.

    Args:
        outcomes (list): CreationOutcome records
        stats (ThreadSafeStatsWrapper): Optional statistics to update
    """
    for outcome in outcomes:
        if outcome.created:
            print(f"[+] Created folder: {outcome.path}")
            if stats is not None:
                stats.increment('folders_created')
        else:
            if is_debug_enabled():
                print(f"[✓] Folder already exists: {outcome.path}")
            if stats is not None:
                stats.increment('folders_existing')


def ensure_folder_exists(client, folder_path, folder_type='Folder', stats=None, force=False, cancel_event=None):
    """
    Create a remote folder hierarchy if it doesn't exist.

    Args:
        client (NuxeoClient): Nuxeo client
        folder_path (str): Remote path to materialize (e.g., '/default-domain/workspaces/ws/2024')
        folder_type (str): Document type used for missing segments
        stats (ThreadSafeStatsWrapper): Optional statistics to update
        force (bool): Re-create the leaf even if it exists
        cancel_event (threading.Event): Optional cancellation signal checked between folders

    Returns:
        dict: Document entity of the leaf folder, None for the repository root

    Raises:
        MaterializationError: If a request fails; folders created before the failure stay
    """
    try:
        outcomes = materialize_path(client, folder_path, doc_type=folder_type, force=force,
                                    cancel_event=cancel_event)
    except MaterializationError as e:
        report_outcomes(e.outcomes, stats)
        print(f"[!] Could not create {e.path}: {e.cause or e}")
        if e.outcomes:
            print(f"[!] {len(e.outcomes)} parent folder(s) were processed before the failure")
        raise

    report_outcomes(outcomes, stats)
    if outcomes:
        return outcomes[-1].document
    return None


def _first_document(result):
    """FileManager.Import returns a document, or a documents list on older servers."""
    if isinstance(result, dict) and 'entries' in result:
        entries = result['entries']
        return entries[0] if entries else None
    return result


def file_to_directory(client, local_path, upload_folder, filename=None):
    """
    Create a new document in a folder from a local file.

    The blob is imported with FileManager.Import, which picks the document type
    from the file; file:filename is then set to the requested name.

    Args:
        client (NuxeoClient): Nuxeo client
        local_path (str): Local file to upload
        upload_folder (str): Remote folder path receiving the document
        filename (str): Name for the document/blob (default: local basename)

    Returns:
        tuple: (document entity, bytes uploaded)
    """
    filename = filename or os.path.basename(local_path)

    batch_id = client.create_batch()
    size = client.upload_blob(batch_id, local_path, filename=filename,
                              mime_type=guess_mime_type(filename))
    result = client.execute_batch(batch_id, 'FileManager.Import',
                                  context={'currentDocument': upload_folder})
    document = _first_document(result)

    if document and document.get('uid'):
        document = client.update_document(document['uid'], {'file:filename': filename}) or document
        if is_debug_enabled():
            print(f"[DEBUG] Updated file:filename on {document.get('path')}")

    return document, size


def force_file_to_document(client, local_path, remote, filename=None):
    """
    Upload a new major version of an existing document.

    The document is checked in first, then the blob is attached to file:content.

    Args:
        client (NuxeoClient): Nuxeo client
        local_path (str): Local file to upload
        remote (dict): Existing document entity
        filename (str): Blob file name (default: local basename)

    Returns:
        int: Bytes uploaded
    """
    filename = filename or os.path.basename(local_path)

    checked_in = client.check_in(remote['path'], version='major')
    if is_debug_enabled():
        print(f"[DEBUG] Checked in {remote['path']} as {(checked_in or {}).get('versionLabel', 'new version')}")

    batch_id = client.create_batch()
    size = client.upload_blob(batch_id, local_path, filename=filename,
                              mime_type=guess_mime_type(filename))
    client.execute_batch(batch_id, 'Blob.Attach',
                         params={'document': remote['path'], 'save': True})
    return size


def files_to_extra_files(client, local_path, destination):
    """
    Attach a local file to the files:files list of a document.

    Args:
        client (NuxeoClient): Nuxeo client
        local_path (str): Local file to upload
        destination (str): Remote document path

    Returns:
        int: Bytes uploaded
    """
    batch_id = client.create_batch()
    size = client.upload_blob(batch_id, local_path, mime_type=guess_mime_type(local_path))
    client.execute_batch(batch_id, 'Blob.Attach',
                         params={'document': destination, 'save': True, 'xpath': 'files:files'})
    return size


def upload_extra_files(client, sources, destination, stats):
    """
    Replace the extra files of a document with local files.

    The files:files list is cleared, then every source is attached in order.

    Args:
        client (NuxeoClient): Nuxeo client
        sources (list): Local file paths
        destination (str): Remote document path
        stats (ThreadSafeStatsWrapper): Statistics to update
    """
    document = client.fetch_by_path(destination)
    client.update_document(document['uid'], {'files:files': []})
    if is_debug_enabled():
        print(f"[DEBUG] Cleared files:files on {destination}")

    for local_path in sources:
        size = files_to_extra_files(client, local_path, destination)
        stats.increment('extra_files')
        stats.add_bytes('bytes_uploaded', size)
        print(f"File Attached: {os.path.basename(local_path)} -> {destination}")


def _upload_to_path(client, local_path, upload_folder, filename, force, stats):
    """Upload local_path as <upload_folder>/<filename>, honoring force for existing documents."""
    remote_path = join_remote_path(upload_folder, filename)
    existence = check_exists(client, remote_path)

    if existence.status == ABSENT:
        document, size = file_to_directory(client, local_path, upload_folder, filename)
        stats.increment('new_files')
        stats.add_bytes('bytes_uploaded', size)
        print(f"File Uploaded: {remote_path}")
        if is_debug_enabled() and document:
            print(f"  → uid: {document.get('uid')}")
        return UPLOADED_NEW

    if force:
        size = force_file_to_document(client, local_path, existence.document, filename)
        stats.increment('versioned_files')
        stats.add_bytes('bytes_uploaded', size)
        print(f"File Updated: {remote_path} (new major version)")
        return UPLOADED_VERSION

    print(f"[=] file {remote_path} exists on nuxeo; use `-f` to force")
    stats.increment('skipped_files')
    return SKIPPED_EXISTING


def upload_file_to_folder(client, local_path, upload_folder, force, stats, folder_document=None):
    """
    Upload a file into a remote folder, keeping its local name.

    Args:
        client (NuxeoClient): Nuxeo client
        local_path (str): Local file to upload
        upload_folder (str): Remote folder path (must exist and be Folderish)
        force (bool): Upload a new major version if the document exists
        stats (ThreadSafeStatsWrapper): Statistics to update
        folder_document (dict): Already-fetched folder entity (skips the lookup)

    Returns:
        str: UPLOADED_NEW, UPLOADED_VERSION or SKIPPED_EXISTING

    Raises:
        DocumentNotFound: If the upload folder does not exist
        NotFolderishError: If the upload folder cannot contain documents
    """
    folder = folder_document or client.fetch_by_path(upload_folder)
    if not is_folderish(folder):
        raise NotFolderishError(f"destination {upload_folder} is not Folderish")

    return _upload_to_path(client, local_path, upload_folder, os.path.basename(local_path), force, stats)


def upload_file_to_document(client, local_path, upload_document, force, stats):
    """
    Upload a file to an exact remote document path.

    The file is renamed on the way to the last component of upload_document.

    Args:
        client (NuxeoClient): Nuxeo client
        local_path (str): Local file to upload
        upload_document (str): Remote document path (e.g., '/ws/reports/final.pdf')
        force (bool): Upload a new major version if the document exists
        stats (ThreadSafeStatsWrapper): Statistics to update

    Returns:
        str: UPLOADED_NEW, UPLOADED_VERSION or SKIPPED_EXISTING
    """
    upload_folder = remote_parent(upload_document)
    filename = remote_basename(upload_document)
    return _upload_to_path(client, local_path, upload_folder, filename, force, stats)


def move_to_folder(client, source, target):
    """
    Move a document into a folder.

    Args:
        client (NuxeoClient): Nuxeo client
        source (str): Remote path of the document to move
        target (str): Remote folder path

    Returns:
        dict: Moved document entity
    """
    document = client.fetch_by_path(source)
    moved = client.move_document(document['path'], target)
    print(f"Successfully moved {moved.get('title')}, updated path: {moved.get('path')}")
    return moved
