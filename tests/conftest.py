"""Shared fixtures: an in-memory stand-in for the Nuxeo repository client."""

import json
import os
import threading

import pytest
import requests

from nuxeo_sync import monitoring
from nuxeo_sync.exceptions import DocumentNotFound, TransportFailure


class FakeNuxeoClient:
    """
    In-memory repository exposing the NuxeoClient methods used by the workflows.

    Every call is appended to .calls as a tuple whose first item is the method name.
    """

    def __init__(self, existing=()):
        self._lock = threading.Lock()
        self._next_uid = 0
        self._batches = {}
        self.base_url = 'http://nuxeo.test/nuxeo'
        self.documents = {}
        self.calls = []
        self.fail_fetch = {}
        self.fail_create = {}
        self.add('/', doc_type='Root')
        for path in existing:
            self.add(path)

    def add(self, path, doc_type='Folder', folderish=True):
        with self._lock:
            self._next_uid += 1
            document = {
                'entity-type': 'document',
                'uid': f'uid-{self._next_uid}',
                'path': path,
                'type': doc_type,
                'title': path.rstrip('/').rsplit('/', 1)[-1] or '/',
                'facets': ['Folderish'] if folderish else [],
                'properties': {},
            }
            self.documents[path] = document
            return document

    def whoami(self):
        self.calls.append(('whoami',))
        return {'entity-type': 'user', 'id': 'Administrator'}

    def calls_named(self, name):
        return [call for call in self.calls if call[0] == name]

    def _by_uid(self, uid):
        for document in self.documents.values():
            if document['uid'] == uid:
                return document
        raise DocumentNotFound('not found', status=404, path=uid)

    def fetch_by_path(self, path):
        self.calls.append(('fetch', path))
        if path in self.fail_fetch:
            raise self.fail_fetch[path]
        if path not in self.documents:
            raise DocumentNotFound('Failed to get document', status=404, path=path)
        return self.documents[path]

    def fetch_children(self, path):
        self.calls.append(('children', path))
        prefix = path.rstrip('/') + '/'
        return [doc for p, doc in sorted(self.documents.items())
                if p.startswith(prefix) and '/' not in p[len(prefix):]]

    def query(self, nxql):
        self.calls.append(('query', nxql))
        return [doc for _, doc in sorted(self.documents.items()) if doc['type'] == 'File']

    def create_document(self, parent_path, name, doc_type, properties=None):
        self.calls.append(('create', parent_path, name, doc_type, properties))
        path = parent_path.rstrip('/') + '/' + name
        if path in self.fail_create:
            raise self.fail_create[path]
        if parent_path not in self.documents:
            raise DocumentNotFound('parent not found', status=404, path=parent_path)
        document = self.add(path, doc_type=doc_type, folderish=doc_type != 'File')
        document['properties'].update(properties or {})
        return document

    def update_document(self, uid, properties):
        self.calls.append(('update', uid, properties))
        document = self._by_uid(uid)
        document['properties'].update(properties)
        return document

    def check_in(self, path, version='major', comment=None):
        self.calls.append(('check_in', path, version))
        document = dict(self.documents[path])
        document['versionLabel'] = '1.0'
        return document

    def move_document(self, source, target, name=None):
        self.calls.append(('move', source, target))
        if target not in self.documents:
            raise DocumentNotFound('target not found', status=404, path=target)
        document = self.documents.pop(source)
        document['path'] = target.rstrip('/') + '/' + (name or source.rsplit('/', 1)[-1])
        self.documents[document['path']] = document
        return document

    def create_batch(self):
        with self._lock:
            batch_id = f'batch-{len(self._batches) + 1}'
            self._batches[batch_id] = {}
        self.calls.append(('create_batch', batch_id))
        return batch_id

    def upload_blob(self, batch_id, local_path, filename=None, file_index=0, mime_type=None):
        filename = filename or os.path.basename(local_path)
        self.calls.append(('upload_blob', batch_id, local_path, filename, mime_type))
        self._batches[batch_id][file_index] = filename
        return os.path.getsize(local_path)

    def execute_batch(self, batch_id, operation, file_index=0, params=None, context=None):
        self.calls.append(('execute_batch', batch_id, operation, params, context))
        filename = self._batches[batch_id][file_index]
        if operation == 'FileManager.Import':
            folder = context['currentDocument']
            return self.create_document(folder, filename, 'File')
        return None


@pytest.fixture
def fake_client():
    """Empty repository (root only)."""
    return FakeNuxeoClient()


@pytest.fixture
def workspace_client():
    """Repository with /ws, a Folderish workspace."""
    return FakeNuxeoClient(existing=['/ws'])


@pytest.fixture(autouse=True)
def reset_monitoring(monkeypatch):
    """Give every test fresh global statistics and request counters."""
    monkeypatch.setattr(monitoring.sync_stats, 'stats', monitoring.SyncStatistics().stats)
    fresh_monitor = monitoring.RequestMonitor()
    monkeypatch.setattr(monitoring.request_monitor, 'metrics', fresh_monitor.metrics)
    monkeypatch.setattr(monitoring.request_monitor, 'request_types', fresh_monitor.request_types)
    monkeypatch.setattr(monitoring.request_monitor, 'operations', fresh_monitor.operations)
    monkeypatch.delenv('DEBUG', raising=False)


@pytest.fixture
def transport_error():
    return TransportFailure('Internal Server Error', status=500, path='/boom')


def make_response(status_code=200, body=None, headers=None, reason=None):
    """Build a real requests.Response carrying a JSON body."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason or ('OK' if status_code < 400 else 'Error')
    if body is not None:
        response._content = json.dumps(body).encode('utf-8')
        response.headers['Content-Type'] = 'application/json'
    else:
        response._content = b''
    for key, value in (headers or {}).items():
        response.headers[key] = value
    return response
