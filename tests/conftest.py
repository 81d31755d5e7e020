import json
import threading
import time

import pytest

from modpack.configurations import ConfigurationContainer
from modpack.installer import InstallResult


class FakeInstaller:
    """Installer double that reports from its own threads.

    `outcomes` maps an identifier string to the exception to report (missing
    means success). `after` maps an identifier to another identifier whose
    callback must fire first. Identifiers in `hold` never report.
    """

    def __init__(self, outcomes=None, after=None, hold=(), delay=0.0):
        self.outcomes = outcomes or {}
        self.after = after or {}
        self.hold = set(hold)
        self.delay = delay
        self.dispatched = []
        self.fired = []
        self._fired_events = {}
        self._lock = threading.Lock()
        self.threads = []

    def _event(self, ident):
        with self._lock:
            return self._fired_events.setdefault(ident, threading.Event())

    def install_module(self, identifier, callback):
        ident = str(identifier)
        self.dispatched.append(ident)
        if ident in self.hold:
            return

        def run():
            if self.delay:
                time.sleep(self.delay)
            first = self.after.get(ident)
            if first is not None:
                self._event(first).wait(5)
            with self._lock:
                self.fired.append(ident)
            callback(InstallResult(identifier, self.outcomes.get(ident)))
            self._event(ident).set()

        t = threading.Thread(target=run, daemon=True)
        self.threads.append(t)
        t.start()

    def close(self):
        pass


@pytest.fixture
def fake_installer_cls():
    return FakeInstaller


@pytest.fixture
def configurations():
    confs = ConfigurationContainer()
    for name in ("vertxincludes", "vertxlibs"):
        confs.create(name)
    return confs


@pytest.fixture
def project_dir(tmp_path):
    """A module project with compiled output, a local jar and a local module repository."""
    root = tmp_path / "proj"
    (root / "build" / "classes" / "main" / "com" / "example").mkdir(parents=True)
    (root / "build" / "classes" / "main" / "com" / "example" / "Main.class").write_bytes(b"\xca\xfe")
    (root / "build" / "classes" / "test").mkdir(parents=True)
    (root / "build" / "classes" / "test" / "MainTest.class").write_bytes(b"\xca\xfe")
    (root / "libs").mkdir()
    (root / "libs" / "commons.jar").write_bytes(b"jar")

    repo = root / "repository" / "io.vertx~mod-web~1.0"
    (repo / "lib").mkdir(parents=True)
    (repo / "mod.json").write_text('{"main": "web.js"}', encoding="utf-8")
    (repo / "lib" / "web-deps.jar").write_bytes(b"jar")

    project = {
        "group": "com.example",
        "name": "hello",
        "version": "1.0",
        "vertx": {
            "platform": {"version": "2.1RC3", "lang": "groovy"},
            "config": {"main": "groovy:Main", "includes": ["io.vertx~mod-web~1.0"]},
            "info": {
                "description": "Sample project",
                "keywords": "Hello,World",
                "developers": [{"id": "dev1", "name": "Dev One"}],
                "licenses": [{"name": "The Apache Software License, Version 2.0"}],
            },
        },
        "dependencies": {"compile": ["libs/commons.jar"]},
    }
    (root / "build.json").write_text(json.dumps(project), encoding="utf-8")
    return root
