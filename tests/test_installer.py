import io
import threading
import zipfile

import pytest
import requests

from modpack.config import PluginSettings
from modpack.identifiers import ModuleIdentifier
from modpack.installer import (
    HttpRepositoryInstaller,
    LocalRepositoryInstaller,
    ModuleAlreadyInstalledError,
    ModuleArchiveError,
    ModuleInstallError,
    ModuleNotFoundInRepository,
    create_default_installer,
    extract_module_archive,
)

WEB = ModuleIdentifier.parse("io.vertx~mod-web~1.0")


def _zip_bytes(entries):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


def _install_async(installer, ident):
    results = []
    done = threading.Event()

    def callback(result):
        results.append(result)
        done.set()

    installer.install_module(ident, callback)
    assert done.wait(5)
    return results


def test_local_directory_install(tmp_path):
    repo = tmp_path / "repo" / str(WEB)
    (repo / "lib").mkdir(parents=True)
    (repo / "lib" / "a.jar").write_bytes(b"jar")
    with LocalRepositoryInstaller(tmp_path / "repo", tmp_path / "mods") as installer:
        results = _install_async(installer, WEB)

    assert len(results) == 1
    assert results[0].succeeded
    assert (tmp_path / "mods" / str(WEB) / "lib" / "a.jar").read_bytes() == b"jar"
    # staging directories are cleaned up
    assert [p.name for p in (tmp_path / "mods").iterdir()] == [str(WEB)]


def test_second_install_reports_already_installed(tmp_path):
    (tmp_path / "repo" / str(WEB)).mkdir(parents=True)
    with LocalRepositoryInstaller(tmp_path / "repo", tmp_path / "mods") as installer:
        installer.install(WEB)
        results = _install_async(installer, str(WEB))
    assert isinstance(results[0].cause, ModuleAlreadyInstalledError)


def test_missing_module_is_reported_not_raised(tmp_path):
    (tmp_path / "repo").mkdir()
    with LocalRepositoryInstaller(tmp_path / "repo", tmp_path / "mods") as installer:
        results = _install_async(installer, WEB)
    assert isinstance(results[0].cause, ModuleNotFoundInRepository)
    assert not (tmp_path / "mods" / str(WEB)).exists()


def test_maven_layout_zip_with_top_level_folder(tmp_path):
    archive = tmp_path / "repo" / WEB.repository_path()
    archive.parent.mkdir(parents=True)
    archive.write_bytes(_zip_bytes({
        f"{WEB}/mod.json": '{"main": "web.js"}',
        f"{WEB}/lib/dep.jar": "jar",
    }))
    with LocalRepositoryInstaller(tmp_path / "repo", tmp_path / "mods") as installer:
        installer.install(WEB)
    module_dir = tmp_path / "mods" / str(WEB)
    assert (module_dir / "mod.json").is_file()
    assert (module_dir / "lib" / "dep.jar").is_file()


def test_archive_entries_cannot_escape(tmp_path):
    archive = tmp_path / "evil.zip"
    archive.write_bytes(_zip_bytes({"../outside.txt": "x"}))
    with pytest.raises(ModuleArchiveError):
        extract_module_archive(archive, tmp_path / "dest", WEB)
    assert not (tmp_path / "outside.txt").exists()


def test_corrupt_archive(tmp_path):
    archive = tmp_path / "repo" / f"{WEB}.zip"
    archive.parent.mkdir(parents=True)
    archive.write_bytes(b"not a zip")
    with LocalRepositoryInstaller(tmp_path / "repo", tmp_path / "mods") as installer:
        with pytest.raises(ModuleArchiveError):
            installer.install(WEB)


class _Response:
    def __init__(self, status, body=b""):
        self.status_code = status
        self._body = body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self._body), chunk_size):
            yield self._body[i:i + chunk_size]


class _Session:
    def __init__(self, responses):
        self.responses = responses
        self.urls = []

    def get(self, url, stream=False, timeout=None):
        self.urls.append(url)
        return self.responses.get(url, _Response(404))


def test_http_install_downloads_maven_archive(tmp_path):
    url = "https://repo.example.com/maven2/io/vertx/mod-web/1.0/mod-web-1.0-mod.zip"
    session = _Session({url: _Response(200, _zip_bytes({"lib/dep.jar": "jar"}))})
    with HttpRepositoryInstaller("https://repo.example.com/maven2/", tmp_path / "mods", session=session) as installer:
        results = _install_async(installer, WEB)
    assert results[0].succeeded
    assert session.urls == [url]
    assert (tmp_path / "mods" / str(WEB) / "lib" / "dep.jar").is_file()


def test_http_not_found_and_server_error(tmp_path):
    session = _Session({})
    with HttpRepositoryInstaller("https://repo.example.com", tmp_path / "mods", session=session) as installer:
        with pytest.raises(ModuleNotFoundInRepository):
            installer.install(WEB)

    url = "https://repo.example.com/" + WEB.repository_path()
    session = _Session({url: _Response(500)})
    with HttpRepositoryInstaller("https://repo.example.com", tmp_path / "mods", session=session) as installer:
        with pytest.raises(ModuleInstallError, match="500"):
            installer.install(WEB)


def test_default_installer_selection(tmp_path):
    local = create_default_installer(tmp_path / "mods", PluginSettings(), tmp_path)
    remote = create_default_installer(tmp_path / "mods", PluginSettings(repository_url="https://repo.example.com"))
    try:
        assert isinstance(local, LocalRepositoryInstaller)
        assert local.repository == tmp_path / "repository"
        assert isinstance(remote, HttpRepositoryInstaller)
    finally:
        local.close()
        remote.close()


def test_abandoned_installer_stops_downloads(tmp_path):
    url = "https://repo.example.com/" + WEB.repository_path()
    session = _Session({url: _Response(200, _zip_bytes({"lib/dep.jar": "jar"}))})
    installer = HttpRepositoryInstaller("https://repo.example.com", tmp_path / "mods", session=session)
    installer.close(wait=False)
    with pytest.raises(ModuleInstallError, match="cancelled"):
        installer.install(WEB)
    assert not (tmp_path / "mods" / str(WEB)).exists()


def test_close_without_wait_returns_while_install_runs(tmp_path, monkeypatch):
    release = threading.Event()
    started = threading.Event()

    def slow_fetch(self, identifier, dest):
        started.set()
        release.wait(5)
        raise ModuleNotFoundInRepository(str(identifier))

    monkeypatch.setattr(LocalRepositoryInstaller, "fetch", slow_fetch)
    installer = LocalRepositoryInstaller(tmp_path / "repo", tmp_path / "mods")
    results = []
    installer.install_module(WEB, results.append)
    assert started.wait(5)
    installer.close(wait=False)
    assert results == []
    release.set()
