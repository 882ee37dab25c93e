# -*- coding: utf-8 -*-
"""
Nuxeo authentication module for Nuxeo sync.

Nuxeo accepts HTTP basic authentication or an authentication token sent in the
X-Authentication-Token header. A token takes precedence when both are set.
"""

from requests.auth import HTTPBasicAuth

from .exceptions import TransportFailure
from .rest_api import NuxeoClient

TOKEN_HEADER = 'X-Authentication-Token'


def build_auth(config):
    """
    Build request authentication from configuration.

    Args:
        config (Config): Configuration with user/password/token

    Returns:
        tuple: (auth, headers) where auth is an HTTPBasicAuth or None and
               headers is a dict of extra headers (token header or empty)
    """
    if config.token:
        return None, {TOKEN_HEADER: config.token}
    return HTTPBasicAuth(config.user, config.password), {}


def create_client(config):
    """
    Create the NuxeoClient used for the whole run.

    Args:
        config (Config): Validated configuration

    Returns:
        NuxeoClient: Client sharing one requests.Session
    """
    auth, headers = build_auth(config)
    return NuxeoClient(config.url, auth=auth, headers=headers,
                       max_retry=config.max_retry, timeout=config.timeout)


def verify_connection(client):
    """
    Verify credentials by fetching the current user.

    Args:
        client (NuxeoClient): Client to check

    Returns:
        dict: Current user entity

    Raises:
        TransportFailure: If the server rejects the credentials or cannot be reached
    """
    try:
        return client.whoami()
    except TransportFailure as e:
        print("[!] ========================================")
        print("[!] AUTHENTICATION FAILED")
        print("[!] ========================================")

        if e.status == 401:
            print("[!] Error: Invalid credentials")
            print("[!] ")
            print("[!] Troubleshooting steps:")
            print("[!]   1. Verify NUXEO_USER and NUXEO_PASSWORD")
            print("[!]   2. If using NUXEO_TOKEN, check the token has not been revoked")
            print("[!]   3. Check the account is not locked on the server")
        elif e.status == 403:
            print("[!] Error: Access denied")
            print("[!] ")
            print("[!] Troubleshooting steps:")
            print("[!]   1. Verify the account may use the REST API")
            print("[!]   2. Check any reverse proxy in front of Nuxeo")
        elif e.status == 404:
            print("[!] Error: REST API not found")
            print("[!] ")
            print("[!] Troubleshooting steps:")
            print(f"[!]   1. Verify NUXEO_URL includes the context path: {client.base_url}")
            print("[!]   2. Example: https://host/nuxeo")
        else:
            print("[!] Common issues:")
            print("[!]   - Network connectivity problems")
            print("[!]   - Incorrect server URL")
        print(f"[!] ")
        print(f"[!] Technical details: {e}")
        print("[!] ========================================")
        raise
