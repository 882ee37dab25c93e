# -*- coding: utf-8 -*-
"""
Local file operations for Nuxeo sync.

This module provides functions for source discovery, exclusion filtering and
mapping local paths onto remote document paths.
"""

import fnmatch
import mimetypes
import os

from .utils import is_debug_enabled, join_remote_path


def expand_patterns(exclude_patterns):
    """
    Normalize --exclude patterns.

    Blank entries are dropped and a bare extension ('tmp', 'log') becomes a
    glob ('*.tmp', '*.log'). Names starting with a dot ('.git') are kept as-is.
    """
    expanded = []
    for pattern in exclude_patterns or []:
        pattern = pattern.strip().replace('\\', '/')
        if not pattern:
            continue
        expanded.append(pattern)
        if not pattern.startswith(('*', '.')) and not _is_glob(pattern):
            expanded.append(f'*.{pattern}')
    return expanded


def _is_glob(pattern):
    return any(char in pattern for char in '*?[')


def should_exclude_path(path, exclude_patterns):
    """
    Decide whether a local path (relative to the upload root) is skipped.

    A pattern excludes the path when it matches the last component, the whole
    relative path, or (for plain names such as '.git' or 'node_modules') any
    directory along the way.

    Args:
        path (str): Relative path, '/' or '\\' separated
        exclude_patterns (list): Patterns as given on the command line

    Returns:
        bool: True if the path must not be uploaded

    Examples:
        >>> should_exclude_path('build/app.log', ['log'])
        True
        >>> should_exclude_path('src/.git/config', ['.git'])
        True
        >>> should_exclude_path('docs/report.pdf', ['*.tmp'])
        False
    """
    patterns = expand_patterns(exclude_patterns)
    if not patterns:
        return False

    relative = path.replace('\\', '/')
    components = relative.split('/')
    name = components[-1]

    for pattern in patterns:
        if fnmatch.fnmatch(name, pattern) or fnmatch.fnmatch(relative, pattern):
            return True
        if not _is_glob(pattern) and pattern in components:
            return True
    return False


def discover_tree(directory, exclude_patterns):
    """
    Walk a local directory tree.

    Args:
        directory (str): Local directory to walk
        exclude_patterns (list): Exclusion patterns (see should_exclude_path)

    Returns:
        tuple: (list of relative directory paths, list of (local_path, relative_path) files),
               relative paths use '/' and are sorted parent-first
    """
    rel_dirs = []
    files = []

    for current, dirnames, filenames in os.walk(directory):
        rel_current = os.path.relpath(current, directory).replace('\\', '/')
        if rel_current == '.':
            rel_current = ''

        # Prune excluded directories in place so os.walk skips them
        kept = []
        for dirname in sorted(dirnames):
            rel_dir = f"{rel_current}/{dirname}" if rel_current else dirname
            if should_exclude_path(rel_dir, exclude_patterns):
                if is_debug_enabled():
                    print(f"[=] Excluded directory: {rel_dir}")
                continue
            kept.append(dirname)
            rel_dirs.append(rel_dir)
        dirnames[:] = kept

        for filename in sorted(filenames):
            rel_file = f"{rel_current}/{filename}" if rel_current else filename
            if should_exclude_path(rel_file, exclude_patterns):
                if is_debug_enabled():
                    print(f"[=] Excluded file: {rel_file}")
                continue
            files.append((os.path.join(current, filename), rel_file))

    rel_dirs.sort(key=lambda d: (d.count('/'), d))
    return rel_dirs, files


def remote_path_for(remote_root, relative_path):
    """
    Map a path relative to a local upload root onto the remote tree.

    Args:
        remote_root (str): Remote folder receiving the upload
        relative_path (str): Local relative path using '/' separators

    Returns:
        str: Remote document path
    """
    if not relative_path:
        return remote_root
    return join_remote_path(remote_root, relative_path.replace('\\', '/'))


def guess_mime_type(local_path):
    """Guess a blob content type from the file name."""
    mime_type, _ = mimetypes.guess_type(local_path)
    return mime_type or 'application/octet-stream'
