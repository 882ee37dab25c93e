# -*- coding: utf-8 -*-
"""
Nuxeo Sync Package
==================

This package provides modular components for synchronizing local files and
folders with a Nuxeo repository: uploads, folder hierarchy creation, listings,
NXQL queries and moves.

Modules:
--------
- config: Configuration and argument parsing
- auth: Nuxeo authentication and client creation
- rest_api: Nuxeo REST/Automation API client and retry logic
- materializer: Idempotent creation of remote folder hierarchies
- uploader: Upload and move operations
- parallel_uploader: Concurrent upload of folder trees
- file_handler: Local file discovery and exclusion
- monitoring: Request monitoring and statistics tracking
- utils: Shared utility functions

Usage Example:
-------------
    from nuxeo_sync import NuxeoClient, materialize_path

    client = NuxeoClient('https://nuxeo.example.org/nuxeo', auth=('user', 'secret'))
    outcomes = materialize_path(client, '/default-domain/workspaces/ws/2024/Reports')
"""

__version__ = "1.0.0"

from .config import parse_config, Config
from .auth import build_auth, create_client, verify_connection
from .rest_api import NuxeoClient, make_nuxeo_request_with_retry
from .materializer import (
    CREATED,
    SKIPPED_EXISTS,
    PRESENT,
    ABSENT,
    CreationOutcome,
    check_exists,
    decompose_path,
    materialize,
    materialize_path
)
from .exceptions import (
    NuxeoSyncError,
    ConfigurationError,
    MalformedPathError,
    TransportFailure,
    DocumentNotFound,
    NotFolderishError,
    DocumentExistsError,
    MaterializationError,
    MaterializationCancelled
)
from .uploader import (
    ensure_folder_exists,
    upload_file_to_folder,
    upload_file_to_document,
    upload_extra_files,
    move_to_folder
)
from .parallel_uploader import ParallelUploader
from .monitoring import request_monitor, sync_stats

__all__ = [
    # Configuration
    'parse_config',
    'Config',
    # Authentication
    'build_auth',
    'create_client',
    'verify_connection',
    # REST API
    'NuxeoClient',
    'make_nuxeo_request_with_retry',
    # Materialization
    'CREATED',
    'SKIPPED_EXISTS',
    'PRESENT',
    'ABSENT',
    'CreationOutcome',
    'check_exists',
    'decompose_path',
    'materialize',
    'materialize_path',
    # Errors
    'NuxeoSyncError',
    'ConfigurationError',
    'MalformedPathError',
    'TransportFailure',
    'DocumentNotFound',
    'NotFolderishError',
    'DocumentExistsError',
    'MaterializationError',
    'MaterializationCancelled',
    # Upload Operations
    'ensure_folder_exists',
    'upload_file_to_folder',
    'upload_file_to_document',
    'upload_extra_files',
    'move_to_folder',
    'ParallelUploader',
    # Monitoring
    'request_monitor',
    'sync_stats',
]
