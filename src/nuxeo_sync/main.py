# -*- coding: utf-8 -*-
"""
Nuxeo Sync Command-Line Tool
============================

PURPOSE:
    Synchronize local files and folders with a Nuxeo repository over the
    REST and Automation APIs.

SYNOPSIS:
    nxsync [--url URL] [--user USER] [--password PASSWORD] [--token TOKEN]
           [--max-retry N] [--timeout SECONDS] [--debug] COMMAND ...

COMMANDS:
    ls PATH
        Print the document at PATH and its children, one per line:
        uid<TAB>type<TAB>path

    query NXQL
        Run an NXQL query and print every matching document.
        `Example`: nxsync query "SELECT * FROM Document WHERE ecm:primaryType = 'Folder'"

    mkdir PATH [-t TYPE] [-p] [-f]
        Create a folderish document. With -p, create every missing parent
        and do not fail on existing ones.

    up SOURCE... (--folder REMOTE | --document REMOTE | --extra-files REMOTE)
              [-f] [-p] [-r] [--exclude PATTERNS] [--workers N]
        Upload files. Existing documents are skipped unless -f is given, in
        which case a new major version is uploaded. With -r, directories are
        uploaded as folder trees.

    mv SOURCE TARGET [-p]
        Move a document into the TARGET folder. With -p, create TARGET first.

ENVIRONMENT:
    NUXEO_URL, NUXEO_USER, NUXEO_PASSWORD, NUXEO_TOKEN, NUXEO_MAX_RETRY,
    NUXEO_TIMEOUT, DEBUG. A .env file in the working directory is loaded.

EXIT CODES:
    0 on success, 1 on any failure.
"""

import os
import sys
import threading
import time

from .auth import create_client, verify_connection
from .config import parse_config
from .exceptions import ConfigurationError, DocumentExistsError, MalformedPathError, NotFolderishError, NuxeoSyncError
from .materializer import ABSENT, check_exists, decompose_path, validate_remote_path
from .monitoring import request_monitor, sync_stats
from .parallel_uploader import ParallelUploader
from .thread_utils import ThreadSafeStatsWrapper
from .uploader import ensure_folder_exists, move_to_folder, upload_extra_files, upload_file_to_document
from .utils import format_document_entity, is_debug_enabled, is_folderish, remote_basename, remote_parent

# Set on Ctrl-C; checked between folder creations and before pending uploads
cancel_event = threading.Event()


# ====================================================================
# LISTING AND QUERIES
# ====================================================================

def list_path(client, path):
    """
    Print a document and, if it is folderish, its children.

    Args:
        client (NuxeoClient): Nuxeo client
        path (str): Remote path

    Returns:
        int: Exit code
    """
    document = client.fetch_by_path(path)
    print(format_document_entity(document))

    if is_folderish(document):
        for entry in client.fetch_children(path):
            print(format_document_entity(entry))
    return 0


def run_query(client, nxql):
    """
    Print every document matching an NXQL query.

    Returns:
        int: Exit code
    """
    entries = client.query(nxql)
    for entry in entries:
        print(format_document_entity(entry))
    if is_debug_enabled():
        print(f"[DEBUG] {len(entries)} documents matched")
    return 0


# ====================================================================
# FOLDER CREATION
# ====================================================================

def make_document(client, path, doc_type, force):
    """
    Create a single document whose parent must already exist.

    Args:
        client (NuxeoClient): Nuxeo client
        path (str): Remote path of the new document
        doc_type (str): Document type
        force (bool): Create even if a document exists at path

    Returns:
        dict: Created document entity

    Raises:
        MalformedPathError: If path is empty or names the repository root
        DocumentExistsError: If path exists and force is False
    """
    validate_remote_path(path)
    chain = decompose_path(path)
    if not chain:
        raise MalformedPathError(f"Cannot create the repository root: {path!r}")
    leaf = chain[-1]

    if check_exists(client, leaf).status != ABSENT and not force:
        raise DocumentExistsError(leaf)

    name = remote_basename(leaf)
    return client.create_document(remote_parent(leaf), name, doc_type, {'dc:title': name})


def make_folder(client, config):
    """
    Handle the mkdir command.

    Returns:
        int: Exit code
    """
    if config.parents:
        stats = ThreadSafeStatsWrapper(sync_stats.stats)
        ensure_folder_exists(client, config.path, folder_type=config.doc_type, stats=stats,
                             force=config.force, cancel_event=cancel_event)
        print(f"[✓] {config.path}: {stats['folders_created']} created, "
              f"{stats['folders_existing']} already present")
        return 0

    document = make_document(client, config.path, config.doc_type, config.force)
    print(f"[+] Created {config.doc_type}: {document.get('path')}")
    if is_debug_enabled():
        print(format_document_entity(document))
    return 0


# ====================================================================
# MOVE
# ====================================================================

def move_document(client, config):
    """
    Handle the mv command.

    Returns:
        int: Exit code
    """
    if config.parents:
        ensure_folder_exists(client, config.target, folder_type=config.folder_type,
                             cancel_event=cancel_event)
    move_to_folder(client, config.source, config.target)
    sync_stats.stats['moved_documents'] += 1
    return 0


# ====================================================================
# UPLOAD
# ====================================================================

def upload(client, config):
    """
    Handle the up command.

    Process:
        1. Show configuration
        2. Verify the connection and credentials
        3. Upload files (materializing folders first where needed)
        4. Print summary statistics

    Returns:
        int: Exit code
    """
    stats = ThreadSafeStatsWrapper(sync_stats.stats)

    # ============================================================
    # [1/3] CONFIGURATION
    # ============================================================
    print("\n" + "=" * 60)
    print("[1/3] CONFIGURATION")
    print("=" * 60)
    print(f"[*] Server: {config.url}")
    if config.force:
        print("[!] Force mode: Enabled (existing documents get a new major version)")
    else:
        print("[✓] Safe mode: Enabled (existing documents are skipped)")
    if config.parents:
        print(f"[✓] Create missing parents: Enabled ({config.folder_type})")
    if config.recursive:
        print(f"[✓] Recursive upload: Enabled ({config.max_upload_workers} workers)")
    if config.exclude_patterns_list:
        print(f"[=] Exclusion patterns: {', '.join(config.exclude_patterns_list)}")

    # ============================================================
    # [2/3] NUXEO CONNECTION
    # ============================================================
    connection_start = time.time()
    print("\n" + "=" * 60)
    print("[2/3] NUXEO CONNECTION")
    print("=" * 60)
    user = verify_connection(client)
    print(f"[✓] Connected as {user.get('id') if user else 'unknown'} ({time.time() - connection_start:.3f}s)")

    # ============================================================
    # [3/3] FILE PROCESSING
    # ============================================================
    print("\n" + "=" * 60)
    print("[3/3] FILE PROCESSING")
    print("=" * 60)

    failed_count = 0
    total_files = 0

    missing = [source for source in config.sources if not os.path.exists(source)]
    for source in missing:
        print(f"[Error] No such file or directory: {source}")
    failed_count += len(missing)
    sources = [source for source in config.sources if source not in missing]

    if config.extra_files_document:
        total_files = len(config.sources)
        directories = [source for source in sources if not os.path.isfile(source)]
        for directory in directories:
            print(f"[Error] Not a file: {directory} (extra files must be regular files)")
        failed_count += len(directories)

        # files:files is replaced as a whole, so never clear it for a partial source list
        if failed_count:
            print(f"[!] Leaving extra files of {config.extra_files_document} unchanged")
        else:
            upload_extra_files(client, sources, config.extra_files_document, stats)

    elif config.upload_document:
        total_files = len(sources)
        if sources:
            if config.parents:
                ensure_folder_exists(client, remote_parent(config.upload_document),
                                     folder_type=config.folder_type, stats=stats,
                                     cancel_event=cancel_event)
            try:
                upload_file_to_document(client, sources[0], config.upload_document, config.force, stats)
            except OSError as read_err:
                print(f"[Error] Cannot read {sources[0]}: {read_err}")
                stats.increment('failed_files')
                failed_count += 1

    else:
        uploader = ParallelUploader(client, max_workers=config.max_upload_workers, stats=stats,
                                    cancel_event=cancel_event)

        if config.parents:
            folders = uploader.materialize_folders([config.upload_folder], folder_type=config.folder_type)
            folder = folders.get(config.upload_folder.rstrip('/') or '/')
        else:
            folder = client.fetch_by_path(config.upload_folder)
        if folder is not None and not is_folderish(folder):
            raise NotFolderishError(f"destination {config.upload_folder} is not Folderish")
        uploader.register_folder(config.upload_folder, folder)

        files = [source for source in sources if os.path.isfile(source)]
        directories = [source for source in sources if os.path.isdir(source)]

        if files:
            total_files += len(files)
            failed_count += uploader.process_files([(f, config.upload_folder) for f in files], config.force)

        for directory in directories:
            if not config.recursive:
                print(f"[!] Skipping directory {directory} (use -r to upload folder trees)")
                failed_count += 1
                continue
            tree_files, tree_failed = uploader.upload_tree(
                directory, config.upload_folder, force=config.force,
                folder_type=config.folder_type, exclude_patterns=config.exclude_patterns_list
            )
            total_files += tree_files
            failed_count += tree_failed

    sync_stats.print_summary(total_files)
    if is_debug_enabled():
        request_monitor.print_summary()

    if failed_count > 0:
        print(f"[!] {failed_count} file(s) failed to process")
        return 1
    return 0


COMMAND_HANDLERS = {
    'ls': lambda client, config: list_path(client, config.path),
    'query': lambda client, config: run_query(client, config.nxql),
    'mkdir': make_folder,
    'up': upload,
    'mv': move_document,
}


def main(argv=None):
    """
    Main execution function: parse configuration, run one command, exit.

    Args:
        argv (list): Command-line arguments without the program name
    """
    try:
        config = parse_config(argv)
    except ConfigurationError as config_error:
        print(f"[Error] {config_error}")
        sys.exit(1)

    # Enables the DEBUG checks in utils.py
    if config.debug:
        os.environ['DEBUG'] = 'true'

    client = create_client(config)

    try:
        exit_code = COMMAND_HANDLERS[config.command](client, config)
    except KeyboardInterrupt:
        cancel_event.set()
        print("\n[!] Interrupted")
        sys.exit(1)
    except NuxeoSyncError as e:
        print(f"[Error] {e}")
        if is_debug_enabled():
            detail = getattr(e, 'detail', None) or getattr(getattr(e, 'cause', None), 'detail', None)
            if detail:
                print(f"[DEBUG] {detail}")
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
