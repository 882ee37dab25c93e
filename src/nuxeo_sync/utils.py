# -*- coding: utf-8 -*-
"""
Shared utility functions for Nuxeo sync operations.

This module provides common helper functions used across multiple modules.
"""

import os
import posixpath


def is_debug_enabled():
    """
    Check if general debug mode is enabled via DEBUG environment variable.

    This controls per-request messages, folder operations and other verbose
    details. Does not affect:
    - Connection messages
    - Command output (listings, query results)
    - Final summary statistics
    - Error messages

    Returns:
        bool: True if general debug mode is enabled, False otherwise
    """
    return os.environ.get('DEBUG', 'false').lower() == 'true'


def join_remote_path(parent, name):
    """
    Join a remote parent path and a child name.

    Args:
        parent (str): Remote parent path (e.g., '/default-domain/workspaces/')
        name (str): Child name

    Returns:
        str: Joined path with exactly one slash between the parts
    """
    return parent.rstrip('/') + '/' + name.strip('/')


def remote_parent(path):
    """Return the parent of a remote path ('/' for top-level documents)."""
    parent = posixpath.dirname(path.rstrip('/'))
    return parent or '/'


def remote_basename(path):
    """Return the last component of a remote path."""
    return posixpath.basename(path.rstrip('/'))


def format_document_entity(document):
    """
    Format a Nuxeo document entity for console listing.

    Args:
        document (dict): Document JSON as returned by the REST API

    Returns:
        str: 'uid<TAB>type<TAB>path'
    """
    return f"{document.get('uid')}\t{document.get('type')}\t{document.get('path')}"


def is_folderish(document):
    """Check whether a document carries the Folderish facet."""
    return 'Folderish' in (document.get('facets') or [])
