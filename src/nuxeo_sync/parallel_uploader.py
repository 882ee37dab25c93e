# -*- coding: utf-8 -*-
"""
Parallel file upload orchestration for Nuxeo sync.

Uploads run in two phases:
1. Every remote folder is materialized sequentially on the calling thread.
2. Files are uploaded concurrently. Workers never create folders, so two
   workers can never race to create the same folder.
"""

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

from .exceptions import MaterializationError, NuxeoSyncError
from .file_handler import discover_tree, remote_path_for
from .materializer import materialize_path
from .thread_utils import ThreadSafeStatsWrapper, serialized_console
from .uploader import report_outcomes, upload_file_to_folder
from .utils import is_debug_enabled, join_remote_path

# Per-file worker results
UPLOADED = 'uploaded'
FAILED = 'failed'
CANCELLED = 'cancelled'


class ParallelUploader:
    """
    Parallel file upload orchestrator.

    Uploads multiple files concurrently while:
    - Creating remote folders in dependency order before any upload starts
    - Preserving statistics tracking through a thread-safe wrapper
    - Handling errors per-file (one failed file does not stop the others)
    """

    def __init__(self, client, max_workers=4, stats=None, cancel_event=None):
        """
        Initialize parallel uploader.

        Args:
            client (NuxeoClient): Shared Nuxeo client (one connection pool)
            max_workers (int): Maximum concurrent upload threads (default: 4)
            stats (ThreadSafeStatsWrapper): Statistics to update
            cancel_event (threading.Event): Set to stop between folders and before pending uploads
        """
        self.client = client
        self.max_workers = max_workers
        self.stats = stats or ThreadSafeStatsWrapper({})
        self.cancel_event = cancel_event or threading.Event()
        self._reported_folders = set()
        self._folder_documents = {}

    def register_folder(self, path, document):
        """Record a folder that is known to exist so workers skip looking it up."""
        self._reported_folders.add(path)
        self._folder_documents[path] = document

    def materialize_folders(self, folder_paths, folder_type='Folder'):
        """
        Materialize remote folders one after another.

        Only the deepest paths need to be materialized: their ancestors are
        created along the way.

        Args:
            folder_paths (list): Remote folder paths
            folder_type (str): Document type for created folders

        Returns:
            dict: Remote path -> folder document entity, for every processed segment

        Raises:
            MaterializationError: On the first folder that cannot be created
        """
        unique = sorted(set(folder_paths))
        leaves = [path for path in unique
                  if not any(other.startswith(path.rstrip('/') + '/') for other in unique)]

        for path in leaves:
            try:
                outcomes = materialize_path(self.client, path, doc_type=folder_type,
                                            cancel_event=self.cancel_event)
            except MaterializationError as e:
                self._record_outcomes(e.outcomes)
                print(f"[!] Could not create {e.path}: {e.cause or e}")
                raise
            self._record_outcomes(outcomes)

        return dict(self._folder_documents)

    def _record_outcomes(self, outcomes):
        """Report outcomes not seen before and remember every folder document."""
        report_outcomes([o for o in outcomes if o.path not in self._reported_folders], self.stats)
        for outcome in outcomes:
            self._reported_folders.add(outcome.path)
            self._folder_documents[outcome.path] = outcome.document

    def upload_tree(self, directory, remote_root, force=False, folder_type='Folder', exclude_patterns=None):
        """
        Upload a local directory tree under a remote folder.

        The directory itself becomes a folder: uploading 'docs' to '/ws' fills '/ws/docs'.

        Args:
            directory (str): Local directory
            remote_root (str): Remote folder receiving the tree
            force (bool): Upload new versions over existing documents
            folder_type (str): Document type for created folders
            exclude_patterns (list): Exclusion patterns

        Returns:
            tuple: (number of files, number of failed uploads)
        """
        remote_base = join_remote_path(remote_root, os.path.basename(os.path.normpath(directory)))
        rel_dirs, files = discover_tree(directory, exclude_patterns or [])

        print(f"[*] {directory}: {len(files)} files in {len(rel_dirs) + 1} folders")

        folder_paths = [remote_base] + [remote_path_for(remote_base, rel_dir) for rel_dir in rel_dirs]
        self.materialize_folders(folder_paths, folder_type=folder_type)

        jobs = []
        for local_path, rel_file in files:
            rel_dir = os.path.dirname(rel_file)
            jobs.append((local_path, remote_path_for(remote_base, rel_dir)))

        return len(jobs), self.process_files(jobs, force)

    def process_files(self, jobs, force=False):
        """
        Upload files in parallel into folders that already exist.

        Args:
            jobs (list): (local_path, remote_folder) pairs
            force (bool): Upload new versions over existing documents

        Returns:
            int: Number of failed uploads (cancelled uploads are counted in
                 stats as cancelled_files, not as failures)
        """
        if not jobs:
            print(f"[✓] No files to upload")
            return 0

        failed_count = 0
        upload_start_time = time.time()

        def upload_worker(worker_id, local_path, remote_folder):
            """Worker function for parallel upload"""
            threading.current_thread().name = f"Upload-{worker_id}"

            if self.cancel_event.is_set():
                self.stats.increment('cancelled_files')
                return CANCELLED

            try:
                upload_file_to_folder(self.client, local_path, remote_folder, force, self.stats,
                                      folder_document=self._folder_documents.get(remote_folder))
                return UPLOADED
            except (NuxeoSyncError, OSError) as upload_err:
                print(f"[!] Upload failed for {local_path}: {str(upload_err)[:200]}")
                self.stats.increment('failed_files')
                return FAILED

        if is_debug_enabled():
            print(f"[DEBUG] Uploading {len(jobs)} files in parallel (workers: {self.max_workers})...")

        with serialized_console():
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                future_to_file = {
                    executor.submit(upload_worker, idx % self.max_workers + 1, local_path, remote_folder): local_path
                    for idx, (local_path, remote_folder) in enumerate(jobs)
                }

                try:
                    for future in as_completed(future_to_file):
                        if future.result() == FAILED:
                            failed_count += 1
                except KeyboardInterrupt:
                    # Pending workers see the event and return without uploading
                    self.cancel_event.set()
                    print("[!] Interrupted - waiting for running uploads to finish")
                    raise

        upload_elapsed = time.time() - upload_start_time
        print(f"\n[✓] Processed {len(jobs)} files ({upload_elapsed:.3f}s)")
        return failed_count
