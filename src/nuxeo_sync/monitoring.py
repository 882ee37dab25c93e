# -*- coding: utf-8 -*-
"""
Request monitoring and statistics tracking for Nuxeo sync.

This module provides classes for counting REST/Automation API requests and
tracking sync statistics.
"""

import threading


class RequestMonitor:
    """
    Track Nuxeo API requests by HTTP method and by operation type.

    Operation types are derived from the request URL:
    - /api/v1/path/...            document lookup (or children listing)
    - /api/v1/query               NXQL query
    - /api/v1/automation/{op}     automation operation
    - /api/v1/upload/...          batch upload
    - /api/v1/id/{uid} (PUT)      document update
    """

    def __init__(self):
        """Initialize request counters"""
        self._lock = threading.Lock()
        self.metrics = {
            'total_requests': 0,
            'retried_requests': 0,
            'throttled_requests': 0,
            'server_errors': 0,
        }

        self.request_types = {
            'GET': 0,
            'POST': 0,
            'PUT': 0,
            'DELETE': 0
        }

        self.operations = {
            'document_lookup': 0,     # GET /path/{path}
            'children_list': 0,       # GET /path/{path}/@children
            'query': 0,               # GET /query
            'automation': 0,          # POST /automation/{operation}
            'batch_upload': 0,        # POST /upload/... (batch init + blob)
            'batch_execute': 0,       # POST /upload/{batch}/.../execute/{operation}
            'document_update': 0,     # PUT /id/{uid}
            'other': 0
        }

    def record_request(self, response, method=None, url=None):
        """
        Record one completed HTTP exchange.

        Args:
            response: requests.Response object from the Nuxeo server
            method (str): HTTP method (GET, POST, PUT, DELETE)
            url (str): Request URL for operation type detection
        """
        with self._lock:
            self.metrics['total_requests'] += 1

            if method and method.upper() in self.request_types:
                self.request_types[method.upper()] += 1

            if url and method:
                self.operations[self._categorize_operation(url, method.upper())] += 1

            if response is not None:
                if response.status_code == 429:
                    self.metrics['throttled_requests'] += 1
                elif 500 <= response.status_code < 600:
                    self.metrics['server_errors'] += 1

    def record_retry(self):
        """Count a request that is about to be re-sent."""
        with self._lock:
            self.metrics['retried_requests'] += 1

    @staticmethod
    def _categorize_operation(url, method):
        """
        Categorize API operation based on URL pattern and HTTP method.

        Args:
            url (str): Request URL
            method (str): HTTP method

        Returns:
            str: Key into self.operations
        """
        url_lower = url.lower()

        if '/upload/' in url_lower and '/execute/' in url_lower:
            return 'batch_execute'
        elif '/upload' in url_lower:
            return 'batch_upload'
        elif '/automation/' in url_lower:
            return 'automation'
        elif method == 'GET' and '/@children' in url_lower:
            return 'children_list'
        elif method == 'GET' and '/path/' in url_lower:
            return 'document_lookup'
        elif method == 'GET' and '/query' in url_lower:
            return 'query'
        elif method == 'PUT' and '/id/' in url_lower:
            return 'document_update'
        return 'other'

    def print_summary(self):
        """Print request statistics collected during this run."""
        print("\n" + "=" * 60)
        print("[=] API REQUEST SUMMARY")
        print("=" * 60)
        print(f"   - Total requests:           {self.metrics['total_requests']:>6}")
        for method, count in self.request_types.items():
            if count > 0:
                print(f"   - {method:<24}{count:>6}")
        for operation, count in self.operations.items():
            if count > 0:
                label = operation.replace('_', ' ').capitalize() + ':'
                print(f"   - {label:<26}{count:>6}")
        if self.metrics['retried_requests'] > 0:
            print(f"   - Retried requests:         {self.metrics['retried_requests']:>6}")
        if self.metrics['throttled_requests'] > 0:
            print(f"[!] Throttled responses (429): {self.metrics['throttled_requests']}")
        if self.metrics['server_errors'] > 0:
            print(f"[!] Server errors (5xx):       {self.metrics['server_errors']}")
        print("=" * 60)


class SyncStatistics:
    """Track folder, upload and move statistics for sync operations"""

    def __init__(self):
        """Initialize sync statistics"""
        self.stats = {
            'folders_created': 0,
            'folders_existing': 0,
            'new_files': 0,
            'versioned_files': 0,     # existing documents checked in and replaced (--force)
            'skipped_files': 0,       # existing documents left alone (no --force)
            'failed_files': 0,
            'cancelled_files': 0,     # queued uploads dropped after Ctrl-C
            'extra_files': 0,         # blobs attached to files:files
            'moved_documents': 0,
            'bytes_uploaded': 0,
        }

    def print_summary(self, total_files):
        """
        Print final summary report of sync statistics.

        Args:
            total_files (int): Total number of local files processed
        """
        print()
        print("=" * 60)
        print("[✓] SYNC PROCESS COMPLETED")
        print("=" * 60)
        print(f"[STATS] Sync Statistics:")
        print(f"   - Folders created:          {self.stats['folders_created']:>6}")
        print(f"   - Folders already present:  {self.stats['folders_existing']:>6}")
        print(f"   - New files uploaded:       {self.stats['new_files']:>6}")
        print(f"   - New versions uploaded:    {self.stats['versioned_files']:>6}")
        print(f"   - Files skipped (exist):    {self.stats['skipped_files']:>6}")
        if self.stats['extra_files'] > 0:
            print(f"   - Extra files attached:     {self.stats['extra_files']:>6}")
        if self.stats['moved_documents'] > 0:
            print(f"   - Documents moved:          {self.stats['moved_documents']:>6}")
        print(f"   - Failed uploads:           {self.stats['failed_files']:>6}")
        if self.stats['cancelled_files'] > 0:
            print(f"   - Uploads cancelled:        {self.stats['cancelled_files']:>6}")
        print(f"   - Total files processed:    {total_files:>6}")

        print(f"\n[DATA] Transfer Summary:")
        print(f"   - Data uploaded:   {format_bytes(self.stats['bytes_uploaded'])}")


def format_bytes(bytes_value):
    """
    Convert bytes to human-readable format.

    Args:
        bytes_value (int): Number of bytes to format

    Returns:
        str: Human-readable string (e.g., "1.5 MB")
    """
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_value < 1024.0:
            return f"{bytes_value:.1f} {unit}"
        bytes_value /= 1024.0
    return f"{bytes_value:.1f} TB"


# Global instances shared by the command-line workflows
request_monitor = RequestMonitor()
sync_stats = SyncStatistics()
