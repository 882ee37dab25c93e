# -*- coding: utf-8 -*-
"""
Nuxeo REST and Automation API operations for Nuxeo sync.

This module provides the request retry logic and the NuxeoClient used by every
workflow. The client is created once per run and passed explicitly to the
functions that need it.
"""

import json
import os
import time
from urllib.parse import quote

import requests

from .exceptions import DocumentNotFound, TransportFailure
from .monitoring import request_monitor
from .utils import is_debug_enabled

NO_SUCH_DOCUMENT = 'org.nuxeo.ecm.core.model.NoSuchDocumentException'

# Page size for @children listings and NXQL queries
DEFAULT_PAGE_SIZE = 100


def make_nuxeo_request_with_retry(session, url, method='GET', json_data=None, data=None, params=None,
                                  headers=None, max_retries=3, timeout=30, monitor=None):
    """
    Make a Nuxeo API request with retry handling for transient errors.

    Retry Logic:
        - 429 (Rate Limit): Waits for Retry-After header duration
        - 5xx (Server Error): Exponential backoff (2s, 3s, 5s)
        - 409 (Conflict): Exponential backoff (3s, 4s, 6s) - document being updated
        - 4xx (Client Error): No retry (except 409 and 429)
        - Timeouts and connection errors: Exponential backoff

    Args:
        session (requests.Session): Session carrying authentication
        url (str): Full request URL
        method (str): HTTP method ('GET', 'POST', 'PUT', 'DELETE')
        json_data (dict): JSON body (mutually exclusive with data)
        data: Binary body or file object (mutually exclusive with json_data)
        params (dict): URL query parameters
        headers (dict): Extra request headers
        max_retries (int): Maximum number of retry attempts (default: 3)
        timeout (float): Per-request timeout in seconds
        monitor (RequestMonitor): Request counter (default: global request_monitor)

    Returns:
        requests.Response: The HTTP response object (any status that is not retried)

    Raises:
        TransportFailure: If retries are exhausted, or on SSL/proxy/redirect errors

    Note:
        Pass max_retries=0 when data is a file object: a consumed stream cannot be re-sent.
    """
    monitor = monitor or request_monitor
    method = method.upper()

    for attempt in range(max_retries + 1):
        if attempt > 0:
            monitor.record_retry()

        try:
            if is_debug_enabled():
                print(f"[DEBUG] {method} {url}")

            if json_data is not None:
                response = session.request(method, url, params=params, headers=headers,
                                           json=json_data, timeout=timeout)
            else:
                response = session.request(method, url, params=params, headers=headers,
                                           data=data, timeout=timeout)

            monitor.record_request(response, method=method, url=url)

            if response.status_code == 429:
                retry_after = response.headers.get('Retry-After', '60')
                try:
                    wait_seconds = int(retry_after)
                except ValueError:
                    wait_seconds = 60  # Default to 60 seconds if header is malformed

                if attempt < max_retries:
                    if is_debug_enabled():
                        print(f"[!] Rate limited (429). Waiting {wait_seconds} seconds before retry {attempt + 1}/{max_retries}...")
                    time.sleep(wait_seconds)
                    continue
                raise TransportFailure(f"Nuxeo rate limiting after {max_retries} retries",
                                       status=429, path=url, detail=response.text[:500])

            elif 500 <= response.status_code < 600:
                if attempt < max_retries:
                    wait_seconds = (2 ** attempt) + 1  # 2, 3, 5 seconds
                    if is_debug_enabled():
                        print(f"[!] Server error ({response.status_code}). Retrying in {wait_seconds} seconds... ({attempt + 1}/{max_retries})")
                    time.sleep(wait_seconds)
                    continue
                # Let the caller turn the final 5xx into a TransportFailure with server details
                return response

            elif response.status_code == 409:
                if attempt < max_retries:
                    wait_seconds = (2 ** attempt) + 2
                    if is_debug_enabled():
                        print(f"[!] Conflict (409). Document may be locked or updating. Retrying in {wait_seconds} seconds... ({attempt + 1}/{max_retries})")
                    time.sleep(wait_seconds)
                    continue
                return response

            return response

        except requests.exceptions.Timeout as e:
            if attempt < max_retries:
                wait_seconds = (2 ** attempt) + 1
                print(f"[!] Request timeout ({str(e)[:100] or 'timeout'}). Retrying in {wait_seconds} seconds... ({attempt + 1}/{max_retries})")
                time.sleep(wait_seconds)
                continue
            print("[!] ========================================")
            print("[!] REQUEST TIMEOUT - All retries exhausted")
            print("[!] ========================================")
            print(f"[!] The request to Nuxeo timed out after {max_retries} retry attempts.")
            print("[!] ")
            print("[!] Troubleshooting steps:")
            print("[!]   1. Check that the Nuxeo server is up and responding")
            print("[!]   2. Raise NUXEO_TIMEOUT for very large uploads")
            print("[!]   3. If using a proxy, verify proxy configuration")
            print("[!] ")
            print(f"[!] URL: {url[:100]}")
            print("[!] ========================================")
            raise TransportFailure(f"Request timed out after {max_retries} retries", path=url,
                                   detail=str(e)[:300]) from e

        except requests.exceptions.SSLError as e:
            print("[!] ========================================")
            print("[!] SSL/TLS CERTIFICATE ERROR")
            print("[!] ========================================")
            print("[!] Failed to verify the SSL certificate of the Nuxeo server.")
            print("[!] ")
            print("[!] Troubleshooting steps:")
            print("[!]   1. Verify the server certificate is valid and not expired")
            print("[!]   2. Ensure system clock is accurate")
            print("[!]   3. Set REQUESTS_CA_BUNDLE if the server uses a private CA")
            print("[!] ")
            print(f"[!] Technical details: {str(e)[:300]}")
            print("[!] ========================================")
            raise TransportFailure("SSL certificate verification failed", path=url,
                                   detail=str(e)[:300]) from e

        except requests.exceptions.ProxyError as e:
            print("[!] ========================================")
            print("[!] PROXY CONNECTION ERROR")
            print("[!] ========================================")
            print("[!] Verify HTTP_PROXY / HTTPS_PROXY / NO_PROXY environment variables.")
            print(f"[!] Technical details: {str(e)[:300]}")
            print("[!] ========================================")
            raise TransportFailure("Proxy connection failed", path=url, detail=str(e)[:300]) from e

        except requests.exceptions.TooManyRedirects as e:
            print("[!] ========================================")
            print("[!] TOO MANY REDIRECTS")
            print("[!] ========================================")
            print(f"[!] Verify NUXEO_URL points at the Nuxeo context path (e.g. https://host/nuxeo)")
            print(f"[!] Technical details: {str(e)[:300]}")
            print("[!] ========================================")
            raise TransportFailure("Too many redirects - possible configuration issue", path=url,
                                   detail=str(e)[:300]) from e

        except requests.exceptions.ConnectionError as e:
            if attempt < max_retries:
                wait_seconds = (2 ** attempt) + 1
                print(f"[!] Network connection error: {str(e)[:100]}. Retrying in {wait_seconds} seconds... ({attempt + 1}/{max_retries})")
                time.sleep(wait_seconds)
                continue
            print("[!] ========================================")
            print("[!] NETWORK CONNECTION FAILED")
            print("[!] ========================================")
            print(f"[!] Could not establish connection after {max_retries} retry attempts.")
            print("[!] ")
            print("[!] Troubleshooting steps:")
            print("[!]   1. Verify NUXEO_URL host name and port")
            print("[!]   2. Check that the Nuxeo server is running")
            print("[!]   3. Ensure firewalls allow the connection")
            print("[!] ")
            print(f"[!] Technical details: {str(e)[:300]}")
            print("[!] ========================================")
            raise TransportFailure(f"Network connection failed after {max_retries} retries", path=url,
                                   detail=str(e)[:300]) from e

        except requests.exceptions.RequestException as e:
            if attempt < max_retries:
                wait_seconds = (2 ** attempt) + 1
                print(f"[!] HTTP request error: {str(e)[:100]}. Retrying in {wait_seconds} seconds... ({attempt + 1}/{max_retries})")
                time.sleep(wait_seconds)
                continue
            raise TransportFailure("HTTP request failed", path=url, detail=str(e)[:300]) from e

    # Should never reach here, but just in case
    raise TransportFailure("Unexpected error in make_nuxeo_request_with_retry", path=url)


def raise_for_nuxeo_status(response, path=None):
    """
    Convert a non-2xx Nuxeo response into an exception.

    Nuxeo reports errors as JSON entities:
        {"entity-type": "exception", "status": 404, "message": "...", "code": "..."}

    Args:
        response (requests.Response): Response to check
        path (str): Remote path the request was about, for error context

    Raises:
        DocumentNotFound: On 404 or a NoSuchDocumentException code
        TransportFailure: On any other non-2xx status
    """
    if 200 <= response.status_code < 300:
        return

    message = response.reason or 'Request failed'
    code = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get('message') or message
        code = body.get('code') or body.get('exception')

    if response.status_code == 404 or code == NO_SUCH_DOCUMENT:
        raise DocumentNotFound(message, status=response.status_code, path=path,
                               detail=response.text[:500], code=code)
    raise TransportFailure(message, status=response.status_code, path=path,
                           detail=response.text[:500], code=code)


def document_input(path):
    """Automation input reference for a document path or uid."""
    if path.startswith('doc:'):
        return path
    return f'doc:{path}'


class NuxeoClient:
    """
    Thin client for the Nuxeo REST API (/api/v1).

    Wraps a requests.Session; share one instance across threads to share the
    connection pool. Every method performs fresh round-trips, nothing is cached.
    """

    def __init__(self, base_url, auth=None, headers=None, max_retry=3, timeout=30,
                 session=None, monitor=None):
        """
        Initialize the client.

        Args:
            base_url (str): Nuxeo context URL (e.g., 'https://host/nuxeo')
            auth: requests auth object (e.g., HTTPBasicAuth), or None
            headers (dict): Extra headers sent with every request (e.g., token header)
            max_retry (int): Retry attempts for transient failures
            timeout (float): Per-request timeout in seconds
            session (requests.Session): Optional pre-built session
            monitor (RequestMonitor): Optional request counter
        """
        self.base_url = base_url.rstrip('/')
        self.api_root = f"{self.base_url}/api/v1"
        self.max_retry = max_retry
        self.timeout = timeout
        self.monitor = monitor or request_monitor

        self.session = session or requests.Session()
        if auth is not None:
            self.session.auth = auth
        self.session.headers.update({
            'Accept': 'application/json',
            'X-NXproperties': '*',
        })
        if headers:
            self.session.headers.update(headers)

    def _request(self, method, url, path=None, max_retries=None, **kwargs):
        response = make_nuxeo_request_with_retry(
            self.session, url, method=method,
            max_retries=self.max_retry if max_retries is None else max_retries,
            timeout=self.timeout, monitor=self.monitor, **kwargs
        )
        raise_for_nuxeo_status(response, path=path or url)
        return response

    @staticmethod
    def _json(response):
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def path_url(self, path):
        """REST URL of a document addressed by its repository path."""
        if not path.startswith('/'):
            path = '/' + path
        return f"{self.api_root}/path{quote(path)}"

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def fetch_by_path(self, path):
        """
        Fetch a document by its absolute repository path.

        Args:
            path (str): Remote path (e.g., '/default-domain/workspaces/ws')

        Returns:
            dict: Document entity (uid, path, type, title, facets, properties)

        Raises:
            DocumentNotFound: If no document exists at the path
            TransportFailure: On any other failure
        """
        return self._json(self._request('GET', self.path_url(path), path=path))

    def fetch_children(self, path, page_size=DEFAULT_PAGE_SIZE):
        """
        List the children of a folderish document, following pagination.

        Returns:
            list: Child document entities
        """
        url = self.path_url(path).rstrip('/') + '/@children'
        return self._paginate(url, {}, page_size, path)

    def query(self, nxql, page_size=DEFAULT_PAGE_SIZE):
        """
        Run an NXQL query, following pagination.

        Args:
            nxql (str): Query (e.g., "SELECT * FROM Document WHERE ecm:primaryType = 'File'")
            page_size (int): Entries per page

        Returns:
            list: Matching document entities
        """
        return self._paginate(f"{self.api_root}/query", {'query': nxql}, page_size, nxql)

    def _paginate(self, url, params, page_size, context):
        entries = []
        page = 0
        while True:
            page_params = dict(params, pageSize=page_size, currentPageIndex=page)
            body = self._json(self._request('GET', url, path=context, params=page_params)) or {}
            entries.extend(body.get('entries', []))
            if not body.get('isNextPageAvailable'):
                return entries
            page += 1

    def update_document(self, uid, properties):
        """
        Update properties of a document.

        Args:
            uid (str): Document uid
            properties (dict): Property xpath -> value (e.g., {'file:filename': 'a.pdf'})

        Returns:
            dict: Updated document entity
        """
        body = {'entity-type': 'document', 'uid': uid, 'properties': properties}
        response = self._request('PUT', f"{self.api_root}/id/{uid}", path=uid, json_data=body)
        return self._json(response)

    def whoami(self):
        """Return the current user entity (used to verify credentials)."""
        return self._json(self._request('GET', f"{self.api_root}/me"))

    # ------------------------------------------------------------------
    # Automation
    # ------------------------------------------------------------------

    def run_operation(self, operation, input=None, params=None, context=None):
        """
        Execute an automation operation.

        Args:
            operation (str): Operation id (e.g., 'Document.Create')
            input (str): Operation input (e.g., 'doc:/path')
            params (dict): Operation parameters
            context (dict): Automation context

        Returns:
            dict: Operation result (document entity or documents list), None if void
        """
        body = {'params': params or {}, 'context': context or {}}
        if input is not None:
            body['input'] = input
        url = f"{self.api_root}/automation/{operation}"
        if is_debug_enabled():
            print(f"[DEBUG] Automation {operation}: {json.dumps(body)[:300]}")
        response = self._request('POST', url, path=input or operation, json_data=body,
                                 headers={'Content-Type': 'application/json'})
        return self._json(response)

    def create_document(self, parent_path, name, doc_type, properties=None):
        """
        Create a document under a parent with Document.Create.

        Args:
            parent_path (str): Remote path of the parent ('/' for the repository root)
            name (str): Path segment of the new document
            doc_type (str): Document type (e.g., 'Folder', 'Workspace')
            properties (dict): Initial properties (e.g., {'dc:title': name})

        Returns:
            dict: Created document entity
        """
        params = {'type': doc_type, 'name': name}
        if properties:
            params['properties'] = properties
        return self.run_operation('Document.Create', input=document_input(parent_path), params=params)

    def move_document(self, source, target, name=None):
        """
        Move a document into a target folder with Document.Move.

        Args:
            source (str): Path (or uid) of the document to move
            target (str): Path (or uid) of the destination folder
            name (str): Optional new name in the target

        Returns:
            dict: Moved document entity
        """
        params = {'target': target}
        if name:
            params['name'] = name
        return self.run_operation('Document.Move', input=document_input(source), params=params)

    def check_in(self, path, version='major', comment=None):
        """
        Check in a document, creating a new version.

        Returns:
            dict: Checked-in document entity
        """
        params = {'version': version}
        if comment:
            params['comment'] = comment
        return self.run_operation('Document.CheckIn', input=document_input(path), params=params)

    # ------------------------------------------------------------------
    # Batch upload
    # ------------------------------------------------------------------

    def create_batch(self):
        """
        Initialize an upload batch.

        Returns:
            str: Batch id
        """
        body = self._json(self._request('POST', f"{self.api_root}/upload/"))
        return body['batchId']

    def upload_blob(self, batch_id, local_path, filename=None, file_index=0, mime_type=None):
        """
        Upload a local file into an upload batch.

        Args:
            batch_id (str): Batch id from create_batch()
            local_path (str): Local file to send
            filename (str): Name to record for the blob (default: local basename)
            file_index (int): Index of the blob inside the batch
            mime_type (str): Content type (default: application/octet-stream)

        Returns:
            int: Number of bytes sent
        """
        filename = filename or os.path.basename(local_path)
        file_size = os.path.getsize(local_path)
        headers = {
            'Content-Type': 'application/octet-stream',
            'X-File-Name': quote(filename),
            'X-File-Size': str(file_size),
            'X-File-Type': mime_type or 'application/octet-stream',
        }
        url = f"{self.api_root}/upload/{batch_id}/{file_index}"
        if is_debug_enabled():
            print(f"[DEBUG] Uploading {local_path} ({file_size:,} bytes) to batch {batch_id}")
        with open(local_path, 'rb') as f:
            # A consumed stream cannot be re-sent, so no retries here
            self._request('POST', url, path=local_path, data=f, headers=headers, max_retries=0)
        return file_size

    def execute_batch(self, batch_id, operation, file_index=0, params=None, context=None):
        """
        Run an automation operation with an uploaded blob as input.

        Returns:
            dict: Operation result
        """
        body = {'params': params or {}, 'context': context or {}}
        url = f"{self.api_root}/upload/{batch_id}/{file_index}/execute/{operation}"
        response = self._request('POST', url, path=operation, json_data=body,
                                 headers={'Content-Type': 'application/json'})
        return self._json(response)
