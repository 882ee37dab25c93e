"""End-to-end tests for the nxsync command line against an in-memory repository."""

from unittest import mock

import pytest

from nuxeo_sync import main as cli
from nuxeo_sync.monitoring import sync_stats

from conftest import FakeNuxeoClient


@pytest.fixture
def repository():
    client = FakeNuxeoClient(existing=['/ws'])
    client.add('/ws/readme.txt', doc_type='File', folderish=False)
    return client


@pytest.fixture(autouse=True)
def environment(monkeypatch, repository):
    for name in ('NUXEO_URL', 'NUXEO_USER', 'NUXEO_PASSWORD', 'NUXEO_MAX_RETRY', 'NUXEO_TIMEOUT'):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('NUXEO_TOKEN', 'secret-token')
    monkeypatch.setattr('nuxeo_sync.config.load_dotenv', lambda: None)
    monkeypatch.setattr(cli, 'create_client', lambda config: repository)
    cli.cancel_event.clear()


def run(*argv):
    """Run the command line, returning its exit code."""
    try:
        cli.main(list(argv))
    except SystemExit as exit_:
        return exit_.code
    return 0


def test_ls_lists_children(repository, capsys):
    assert run('ls', '/ws') == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == f"{repository.documents['/ws']['uid']}\tFolder\t/ws"
    assert lines[1].endswith('\tFile\t/ws/readme.txt')


def test_ls_document_without_children(repository, capsys):
    assert run('ls', '/ws/readme.txt') == 0
    assert len(capsys.readouterr().out.splitlines()) == 1
    assert repository.calls_named('children') == []


def test_ls_missing_path(capsys):
    assert run('ls', '/nowhere') == 1
    assert '[Error]' in capsys.readouterr().out


def test_query(repository, capsys):
    assert run('query', "SELECT * FROM Document WHERE ecm:primaryType = 'File'") == 0
    assert '/ws/readme.txt' in capsys.readouterr().out
    assert repository.calls_named('query')


def test_configuration_error_exits(monkeypatch, capsys):
    monkeypatch.delenv('NUXEO_TOKEN')
    assert run('ls', '/ws') == 1
    assert '[Error] Set NUXEO_TOKEN' in capsys.readouterr().out


class TestMkdir:
    def test_creates_single_folder(self, repository, capsys):
        assert run('mkdir', '/ws/reports', '-t', 'Workspace') == 0
        assert repository.documents['/ws/reports']['type'] == 'Workspace'
        assert '[+] Created Workspace: /ws/reports' in capsys.readouterr().out

    def test_existing_folder_fails_without_force(self, repository, capsys):
        assert run('mkdir', '/ws') == 1
        assert '[Error] /ws exists on nuxeo; use `-f` to force' in capsys.readouterr().out
        assert repository.calls_named('create') == []

    def test_force_creates_anyway(self, repository):
        assert run('mkdir', '/ws', '-f') == 0
        assert repository.calls_named('create') == [('create', '/', 'ws', 'Folder', {'dc:title': 'ws'})]

    def test_missing_parent_fails_without_parents(self, repository):
        assert run('mkdir', '/ws/a/b') == 1
        assert '/ws/a/b' not in repository.documents

    def test_parents_creates_hierarchy(self, repository, capsys):
        assert run('mkdir', '/ws/a/b', '-p') == 0
        assert '/ws/a/b' in repository.documents
        assert '[✓] /ws/a/b: 2 created, 1 already present' in capsys.readouterr().out

    def test_parents_is_idempotent(self, repository, capsys):
        run('mkdir', '/ws/a', '-p')
        capsys.readouterr()
        sync_stats.stats.update(folders_created=0, folders_existing=0)

        assert run('mkdir', '/ws/a', '-p') == 0
        assert '0 created, 2 already present' in capsys.readouterr().out

    def test_root_cannot_be_created(self, capsys):
        assert run('mkdir', '/') == 1
        assert 'repository root' in capsys.readouterr().out

    def test_malformed_path(self, repository):
        assert run('mkdir', '/ws//x') == 1
        assert repository.calls == []


class TestUpload:
    def test_files_into_folder(self, repository, tmp_path, capsys):
        local = tmp_path / 'notes.txt'
        local.write_text('hello')

        assert run('up', str(local), '--folder', '/ws') == 0
        assert '/ws/notes.txt' in repository.documents
        out = capsys.readouterr().out
        assert '[3/3] FILE PROCESSING' in out
        assert 'SYNC PROCESS COMPLETED' in out
        assert repository.calls_named('whoami')

    def test_existing_file_is_skipped(self, repository, tmp_path, capsys):
        local = tmp_path / 'readme.txt'
        local.write_text('hello')

        assert run('up', str(local), '--folder', '/ws') == 0
        assert 'use `-f` to force' in capsys.readouterr().out
        assert sync_stats.stats['skipped_files'] == 1

    def test_missing_source_fails(self, tmp_path, capsys):
        assert run('up', str(tmp_path / 'gone.txt'), '--folder', '/ws') == 1
        assert 'No such file or directory' in capsys.readouterr().out

    def test_directory_requires_recursive(self, tmp_path, capsys):
        (tmp_path / 'tree').mkdir()
        assert run('up', str(tmp_path / 'tree'), '--folder', '/ws') == 1
        assert 'use -r' in capsys.readouterr().out

    def test_recursive_with_parents(self, repository, tmp_path):
        tree = tmp_path / 'tree'
        (tree / 'sub').mkdir(parents=True)
        (tree / 'sub' / 'a.txt').write_text('a')

        assert run('up', str(tree), '--folder', '/ws/2024/import', '-r', '-p') == 0
        assert '/ws/2024/import/tree/sub/a.txt' in repository.documents
        assert sync_stats.stats['folders_created'] == 4
        assert sync_stats.stats['folders_existing'] == 1

    def test_missing_destination_without_parents(self, tmp_path):
        local = tmp_path / 'a.txt'
        local.write_text('a')
        assert run('up', str(local), '--folder', '/ws/missing') == 1

    def test_destination_not_folderish(self, tmp_path, capsys):
        local = tmp_path / 'a.txt'
        local.write_text('a')
        assert run('up', str(local), '--folder', '/ws/readme.txt') == 1
        assert 'not Folderish' in capsys.readouterr().out

    def test_exact_document_path(self, repository, tmp_path):
        local = tmp_path / 'draft.pdf'
        local.write_bytes(b'pdf')

        assert run('up', str(local), '--document', '/ws/final/report.pdf', '-p') == 0
        assert repository.documents['/ws/final/report.pdf']['properties']['file:filename'] == 'report.pdf'

    def test_extra_files(self, repository, tmp_path):
        local = tmp_path / 'annex.txt'
        local.write_text('annex')

        assert run('up', str(local), '--extra-files', '/ws/readme.txt') == 0
        assert sync_stats.stats['extra_files'] == 1

    def test_extra_files_with_missing_source_keep_existing_annexes(self, repository, tmp_path, capsys):
        properties = repository.documents['/ws/readme.txt']['properties']
        properties['files:files'] = [{'file': 'a'}, {'file': 'b'}]

        assert run('up', str(tmp_path / 'gone.txt'), '--extra-files', '/ws/readme.txt') == 1
        assert properties['files:files'] == [{'file': 'a'}, {'file': 'b'}]
        assert repository.calls_named('update') == []
        assert repository.calls_named('upload_blob') == []
        assert 'unchanged' in capsys.readouterr().out

    def test_extra_files_reject_directories(self, repository, tmp_path, capsys):
        properties = repository.documents['/ws/readme.txt']['properties']
        properties['files:files'] = [{'file': 'a'}]
        (tmp_path / 'tree').mkdir()

        assert run('up', str(tmp_path / 'tree'), '--extra-files', '/ws/readme.txt') == 1
        assert properties['files:files'] == [{'file': 'a'}]
        assert 'Not a file' in capsys.readouterr().out
        assert sync_stats.stats['extra_files'] == 0

    def test_extra_files_partial_sources_upload_nothing(self, repository, tmp_path):
        properties = repository.documents['/ws/readme.txt']['properties']
        properties['files:files'] = [{'file': 'a'}]
        local = tmp_path / 'annex.txt'
        local.write_text('annex')

        assert run('up', str(local), str(tmp_path / 'gone.txt'), '--extra-files', '/ws/readme.txt') == 1
        assert properties['files:files'] == [{'file': 'a'}]
        assert repository.calls_named('upload_blob') == []

    def test_document_source_directory_fails(self, repository, tmp_path, capsys):
        (tmp_path / 'tree').mkdir()
        assert run('up', str(tmp_path / 'tree'), '--document', '/ws/report.pdf') == 1
        assert 'must be an existing file' in capsys.readouterr().out
        assert repository.calls_named('create_batch') == []

    def test_document_source_unreadable_fails(self, repository, tmp_path, capsys):
        local = tmp_path / 'locked.pdf'
        local.write_bytes(b'pdf')
        with mock.patch.object(repository, 'upload_blob',
                               side_effect=PermissionError(13, 'Permission denied')):
            assert run('up', str(local), '--document', '/ws/report.pdf') == 1
        assert '[Error] Cannot read' in capsys.readouterr().out
        assert sync_stats.stats['failed_files'] == 1
        assert '/ws/report.pdf' not in repository.documents

    def test_authentication_failure(self, repository, tmp_path, capsys):
        from nuxeo_sync.exceptions import TransportFailure
        local = tmp_path / 'a.txt'
        local.write_text('a')
        with mock.patch.object(repository, 'whoami',
                               side_effect=TransportFailure('Unauthorized', status=401)):
            assert run('up', str(local), '--folder', '/ws') == 1
        out = capsys.readouterr().out
        assert 'AUTHENTICATION FAILED' in out
        assert repository.calls_named('create_batch') == []


class TestMove:
    def test_move_into_existing_folder(self, repository, capsys):
        repository.add('/archive')
        assert run('mv', '/ws/readme.txt', '/archive') == 0
        assert '/archive/readme.txt' in repository.documents
        assert 'updated path: /archive/readme.txt' in capsys.readouterr().out

    def test_move_with_parents(self, repository):
        assert run('mv', '/ws/readme.txt', '/archive/2024', '-p') == 0
        assert '/archive/2024/readme.txt' in repository.documents
        assert sync_stats.stats['moved_documents'] == 1

    def test_move_to_missing_target(self, repository):
        assert run('mv', '/ws/readme.txt', '/archive') == 1
        assert '/ws/readme.txt' in repository.documents
