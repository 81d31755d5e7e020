"""Module installers: make modules available under a `mods/` directory.

`install_module(identifier, callback)` runs the install on a worker thread and
hands the outcome to `callback` exactly once. Backends differ only in how they
fetch a module into a staging directory:

- `LocalRepositoryInstaller` copies from a directory on disk,
- `HttpRepositoryInstaller` downloads a Maven-layout `-mod.zip` archive.
"""

import logging
import os
import shutil
import tempfile
import threading
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

import requests

from .identifiers import ModuleIdentifier

logger = logging.getLogger(__name__)


class ModuleInstallError(Exception):
    """Base class for install failures reported through `InstallResult.cause`."""


class ModuleAlreadyInstalledError(ModuleInstallError):
    """The module directory already exists; callers treat this as success."""


class ModuleNotFoundInRepository(ModuleInstallError):
    pass


class ModuleArchiveError(ModuleInstallError):
    """The module archive is corrupt or tries to write outside the module."""


@dataclass(frozen=True)
class InstallResult:
    identifier: ModuleIdentifier
    cause: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.cause is None


InstallCallback = Callable[[InstallResult], None]


def _as_identifier(identifier: Union[str, ModuleIdentifier]) -> ModuleIdentifier:
    if isinstance(identifier, ModuleIdentifier):
        return identifier
    return ModuleIdentifier.parse(identifier)


def extract_module_archive(archive: Path, dest: Path, identifier: ModuleIdentifier) -> None:
    """Unpack a module zip into `dest`.

    A single top-level `<identifier>/` folder is stripped. Entries resolving
    outside `dest` abort the extraction.
    """
    dest.mkdir(parents=True, exist_ok=True)
    root = dest.resolve()
    prefix = f"{identifier}/"
    try:
        with zipfile.ZipFile(archive) as zf:
            infos = zf.infolist()
            strip = bool(infos) and all(i.filename.startswith(prefix) for i in infos)
            for info in infos:
                name = info.filename[len(prefix):] if strip else info.filename
                if not name:
                    continue
                target = (root / name).resolve()
                if target != root and root not in target.parents:
                    raise ModuleArchiveError(f"archive entry escapes module directory: {info.filename}")
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(target, "wb") as out:
                    shutil.copyfileobj(src, out)
    except zipfile.BadZipFile as e:
        raise ModuleArchiveError(f"corrupt module archive {archive.name}") from e


class ModuleInstaller:
    """Base installer: threading, staging and the already-installed check."""

    def __init__(self, mods_dir, max_workers: int = 4) -> None:
        self.mods_dir = Path(mods_dir)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="modpack-install")
        self._move_lock = threading.Lock()
        self._abandoned = threading.Event()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self, wait: bool = True) -> None:
        """Shut down the worker pool.

        With `wait=False` queued installs are cancelled and running ones are
        abandoned: downloads stop at their next chunk, and callbacks may still
        fire later.
        """
        if not wait:
            self._abandoned.set()
        self._executor.shutdown(wait=wait, cancel_futures=not wait)

    def module_dir(self, identifier: ModuleIdentifier) -> Path:
        return self.mods_dir / str(identifier)

    def install_module(self, identifier: Union[str, ModuleIdentifier], callback: InstallCallback) -> None:
        """Install `identifier` asynchronously and report to `callback` once."""
        ident = _as_identifier(identifier)

        def run() -> None:
            try:
                self.install(ident)
                result = InstallResult(ident)
            except Exception as e:  # reported to the caller through the result
                logger.debug("Install of %s failed: %s", ident, e)
                result = InstallResult(ident, e)
            try:
                callback(result)
            except Exception:
                logger.exception("Install callback for %s raised", ident)

        self._executor.submit(run)

    def install(self, identifier: ModuleIdentifier) -> Path:
        """Install synchronously; returns the module directory."""
        target = self.module_dir(identifier)
        if target.exists():
            raise ModuleAlreadyInstalledError(f"Module is already installed: {identifier}")
        self.mods_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix=f".{identifier}.", dir=self.mods_dir) as tmp:
            staged = Path(tmp) / "module"
            self.fetch(identifier, staged)
            with self._move_lock:
                if target.exists():
                    raise ModuleAlreadyInstalledError(f"Module is already installed: {identifier}")
                os.replace(staged, target)
        logger.info("Installed module %s into %s", identifier, target)
        return target

    def fetch(self, identifier: ModuleIdentifier, dest: Path) -> None:
        """Populate `dest` with the module contents."""
        raise NotImplementedError


class LocalRepositoryInstaller(ModuleInstaller):
    """Installs from a directory holding unpacked modules, zips or a Maven layout."""

    def __init__(self, repository, mods_dir, max_workers: int = 4) -> None:
        super().__init__(mods_dir, max_workers=max_workers)
        self.repository = Path(repository)

    def fetch(self, identifier: ModuleIdentifier, dest: Path) -> None:
        unpacked = self.repository / str(identifier)
        if unpacked.is_dir():
            shutil.copytree(unpacked, dest)
            return
        for archive in (self.repository / f"{identifier}.zip", self.repository / identifier.repository_path()):
            if archive.is_file():
                extract_module_archive(archive, dest, identifier)
                return
        raise ModuleNotFoundInRepository(f"Module {identifier} not found in {self.repository}")


class HttpRepositoryInstaller(ModuleInstaller):
    """Downloads `-mod.zip` archives from a Maven-layout HTTP repository."""

    def __init__(self, base_url: str, mods_dir, max_workers: int = 4,
                 session: Optional[requests.Session] = None, timeout: float = 60.0) -> None:
        super().__init__(mods_dir, max_workers=max_workers)
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def archive_url(self, identifier: ModuleIdentifier) -> str:
        return f"{self.base_url}/{identifier.repository_path()}"

    def fetch(self, identifier: ModuleIdentifier, dest: Path) -> None:
        url = self.archive_url(identifier)
        archive = dest.parent / "module.zip"
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as resp:
                if resp.status_code == 404:
                    raise ModuleNotFoundInRepository(f"Module {identifier} not found at {url}")
                resp.raise_for_status()
                with open(archive, "wb") as fh:
                    for chunk in resp.iter_content(chunk_size=64 * 1024):
                        if self._abandoned.is_set():
                            raise ModuleInstallError(f"download of {url} cancelled")
                        fh.write(chunk)
        except requests.RequestException as e:
            raise ModuleInstallError(f"download of {url} failed: {e}") from e
        extract_module_archive(archive, dest, identifier)


def create_default_installer(mods_dir, settings, root_dir=None) -> ModuleInstaller:
    """Pick the HTTP repository when a URL is configured, else the local one."""
    if settings.repository_url:
        logger.debug("Using remote module repository %s", settings.repository_url)
        return HttpRepositoryInstaller(settings.repository_url, mods_dir, max_workers=settings.install_workers)
    repository = settings.repository or Path(root_dir or ".") / "repository"
    logger.debug("Using local module repository %s", repository)
    return LocalRepositoryInstaller(repository, mods_dir, max_workers=settings.install_workers)
