"""
Shared fixtures for Liquibase Installer tests

No test touches the network: HTTP goes through FakeSession.
"""
import io
import json
import tarfile
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import requests
from rich.console import Console

from liquibase_installer.output import Reporter


LAUNCHER_SCRIPT = b'#!/bin/sh\necho "Liquibase Version: 4.33.0"\n'


class FakeResponse:
    """Just enough of requests.Response for the installer"""

    def __init__(self, status_code: int = 200, json_data=None, content: bytes = b'',
                 headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self._json = json_data
        self.content = content
        self.headers = headers or {}

    def json(self):
        if self._json is None:
            raise json.JSONDecodeError("Expecting value", "", 0)
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error for url")

    def iter_content(self, chunk_size=1024):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class FakeSession:
    """Routes URLs to canned responses and records every request"""

    def __init__(self, routes: Optional[Dict[str, FakeResponse]] = None):
        self.routes = routes or {}
        self.calls: List[str] = []
        self.headers_seen: List[Dict[str, str]] = []

    def get(self, url, headers=None, timeout=None, stream=False):
        self.calls.append(url)
        self.headers_seen.append(dict(headers or {}))
        if url not in self.routes:
            raise requests.ConnectionError(f"No route to {url}")
        return self.routes[url]


def payload_files(version: str = "4.33.0") -> Dict[str, bytes]:
    return {
        'liquibase': LAUNCHER_SCRIPT,
        'liquibase.bat': b'@echo off\r\necho Liquibase Version: 4.33.0\r\n',
        'internal/lib/liquibase-core.jar': b'PK\x03\x04jar',
        f'VERSION-{version}.txt': version.encode(),
    }


def build_tar(files: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode='w:gz') as tf:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755 if name.endswith('liquibase') else 0o644
            tf.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def build_zip(files: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def nested(files: Dict[str, bytes], directory: str) -> Dict[str, bytes]:
    return {f"{directory}/{name}": data for name, data in files.items()}


@pytest.fixture
def reporter():
    """Verbose reporter writing into memory; read with reporter.text()"""
    out = io.StringIO()
    err = io.StringIO()
    rep = Reporter(
        verbose=True,
        console=Console(file=out, width=200, color_system=None),
        err_console=Console(file=err, width=200, color_system=None),
    )
    rep.text = lambda: out.getvalue() + err.getvalue()
    return rep


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Isolated home directory with no installer config"""
    home_dir = tmp_path / 'home'
    home_dir.mkdir()
    monkeypatch.setenv('HOME', str(home_dir))
    monkeypatch.setenv('USERPROFILE', str(home_dir))
    for var in ('VERBOSE', 'DRY_RUN', 'GITHUB_TOKEN', 'LIQUIBASE_INSTALLER_CONFIG'):
        monkeypatch.delenv(var, raising=False)
    return home_dir


@pytest.fixture
def prefix(tmp_path) -> Path:
    return tmp_path / 'prefix'
