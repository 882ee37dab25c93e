# -*- coding: utf-8 -*-
"""
Configuration management for Nuxeo sync.

This module handles command-line argument parsing and configuration setup.
Connection settings come from the environment (optionally a .env file) and
can be overridden on the command line.
"""

import argparse
import os

from dotenv import load_dotenv

from .exceptions import ConfigurationError

DEFAULT_URL = 'http://localhost:8080/nuxeo'
DEFAULT_MAX_RETRY = 3
DEFAULT_TIMEOUT = 30
DEFAULT_WORKERS = 4
MAX_WORKERS = 10

COMMANDS = ('ls', 'query', 'mkdir', 'up', 'mv')


def build_parser():
    """
    Build the argument parser for all subcommands.

    Returns:
        argparse.ArgumentParser: Parser with ls, query, mkdir, up and mv subcommands
    """
    parser = argparse.ArgumentParser(
        prog='nxsync',
        description='Synchronize local files and folders with a Nuxeo repository.'
    )
    parser.add_argument('--url', help=f'Nuxeo server URL (env NUXEO_URL, default {DEFAULT_URL})')
    parser.add_argument('--user', help='Nuxeo user name (env NUXEO_USER)')
    parser.add_argument('--password', help='Nuxeo password (env NUXEO_PASSWORD)')
    parser.add_argument('--token', help='Nuxeo authentication token (env NUXEO_TOKEN)')
    parser.add_argument('--max-retry', type=int, help='Retry attempts for transient errors (env NUXEO_MAX_RETRY)')
    parser.add_argument('--timeout', type=float, help='Request timeout in seconds (env NUXEO_TIMEOUT)')
    parser.add_argument('--debug', action='store_true', help='Verbose output (env DEBUG=true)')

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    ls_parser = subparsers.add_parser('ls', help='list a document and its children')
    ls_parser.add_argument('path', help='remote path')

    query_parser = subparsers.add_parser('query', help='run an NXQL query')
    query_parser.add_argument('nxql', help='NXQL query string')

    mkdir_parser = subparsers.add_parser('mkdir', help='create a folderish document')
    mkdir_parser.add_argument('path', help='remote path to create')
    mkdir_parser.add_argument('-t', '--type', dest='doc_type', default='Folder', help='document type (default: Folder)')
    mkdir_parser.add_argument('-p', '--parents', action='store_true', help='create missing parents, no error if existing')
    mkdir_parser.add_argument('-f', '--force', action='store_true', help='create even if the document exists')

    up_parser = subparsers.add_parser('up', help='upload local files')
    up_parser.add_argument('sources', nargs='+', help='local files (or directories with -r)')
    target = up_parser.add_mutually_exclusive_group(required=True)
    target.add_argument('--folder', dest='upload_folder', help='remote folder to upload into')
    target.add_argument('--document', dest='upload_document', help='exact remote document path (single source)')
    target.add_argument('--extra-files', dest='extra_files_document', help='attach sources to files:files of this document')
    up_parser.add_argument('-f', '--force', action='store_true', help='upload a new major version over existing documents')
    up_parser.add_argument('-p', '--parents', action='store_true', help='create the destination folder hierarchy first')
    up_parser.add_argument('-r', '--recursive', action='store_true', help='upload directory trees')
    up_parser.add_argument('--exclude', default='', help="comma-separated exclusion patterns (e.g. '*.tmp,.git')")
    up_parser.add_argument('--folder-type', default='Folder', help='type for folders created with -p or -r')
    up_parser.add_argument('--workers', type=int, default=DEFAULT_WORKERS, help=f'concurrent uploads (max {MAX_WORKERS})')

    mv_parser = subparsers.add_parser('mv', help='move a document into a folder')
    mv_parser.add_argument('source', help='remote path of the document to move')
    mv_parser.add_argument('target', help='remote folder to move into')
    mv_parser.add_argument('-p', '--parents', action='store_true', help='create the target folder hierarchy first')
    mv_parser.add_argument('--folder-type', default='Folder', help='type for folders created with -p')

    return parser


class Config:
    """Configuration for Nuxeo sync operations"""

    def __init__(self, argv=None, environ=None):
        """
        Parse command-line arguments and initialize configuration.

        Connection settings are resolved in this order:
        1. Command-line flag (--url, --user, --password, --token, --max-retry, --timeout)
        2. Environment variable (NUXEO_URL, NUXEO_USER, NUXEO_PASSWORD, NUXEO_TOKEN,
           NUXEO_MAX_RETRY, NUXEO_TIMEOUT), including values loaded from .env
        3. Built-in default

        Args:
            argv (list): Arguments without the program name (default: sys.argv[1:])
            environ (dict): Environment mapping (default: os.environ)
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        args = build_parser().parse_args(argv)
        self.args = args
        self.command = args.command

        # Connection
        self.url = args.url or environ.get('NUXEO_URL') or DEFAULT_URL
        self.user = args.user or environ.get('NUXEO_USER', '')
        self.password = args.password or environ.get('NUXEO_PASSWORD', '')
        self.token = args.token or environ.get('NUXEO_TOKEN', '')
        self.max_retry = args.max_retry if args.max_retry is not None else _int_env(environ, 'NUXEO_MAX_RETRY', DEFAULT_MAX_RETRY)
        self.timeout = args.timeout if args.timeout is not None else _float_env(environ, 'NUXEO_TIMEOUT', DEFAULT_TIMEOUT)
        self.debug = args.debug or environ.get('DEBUG', 'false').lower() == 'true'

        # Command options (absent attributes default to None/False)
        self.path = getattr(args, 'path', None)
        self.nxql = getattr(args, 'nxql', None)
        self.doc_type = getattr(args, 'doc_type', 'Folder')
        self.parents = getattr(args, 'parents', False)
        self.force = getattr(args, 'force', False)
        self.sources = getattr(args, 'sources', [])
        self.upload_folder = getattr(args, 'upload_folder', None)
        self.upload_document = getattr(args, 'upload_document', None)
        self.extra_files_document = getattr(args, 'extra_files_document', None)
        self.recursive = getattr(args, 'recursive', False)
        self.folder_type = getattr(args, 'folder_type', 'Folder')
        self.source = getattr(args, 'source', None)
        self.target = getattr(args, 'target', None)

        # Max upload workers: keep well under the server's HTTP thread pool
        workers = getattr(args, 'workers', DEFAULT_WORKERS)
        self.max_upload_workers = min(workers, MAX_WORKERS) if workers else DEFAULT_WORKERS

        # Derived values
        exclude = getattr(args, 'exclude', '') or ''
        self.exclude_patterns_list = [p.strip() for p in exclude.split(',') if p.strip()]

    def validate(self):
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.url.startswith(('http://', 'https://')):
            raise ConfigurationError(f"Nuxeo URL must start with http:// or https://: {self.url}")
        if not self.token and not self.user:
            raise ConfigurationError("Set NUXEO_TOKEN, or NUXEO_USER and NUXEO_PASSWORD")
        if self.user and not self.token and not self.password:
            raise ConfigurationError("NUXEO_PASSWORD cannot be empty when NUXEO_USER is set")
        if self.max_retry < 0:
            raise ConfigurationError("max_retry must be non-negative")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        if self.max_upload_workers < 1:
            raise ConfigurationError("workers must be at least 1")
        if self.command == 'up' and self.upload_document and len(self.sources) != 1:
            raise ConfigurationError("--document accepts exactly one source file")
        if self.command == 'up' and self.upload_document and self.recursive:
            raise ConfigurationError("--document cannot be combined with -r")
        if self.command == 'up' and self.upload_document and not os.path.isfile(self.sources[0]):
            raise ConfigurationError(f"--document source must be an existing file: {self.sources[0]}")


def _int_env(environ, name, default):
    value = environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


def _float_env(environ, name, default):
    value = environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


def parse_config(argv=None, environ=None):
    """
    Parse configuration from command-line arguments and environment.

    Returns:
        Config: Configured Config object

    Raises:
        ConfigurationError: If configuration is invalid
        SystemExit: If the command line cannot be parsed (argparse)
    """
    config = Config(argv, environ)
    config.validate()
    return config
