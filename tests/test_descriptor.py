import json

import pytest

from modpack.config import PlatformConfig
from modpack.descriptor import (
    DescriptorValidationError,
    build_descriptor,
    validate_descriptor,
    write_descriptor,
)
from modpack.validator import validate_descriptor_file


def test_build_descriptor_folds_info_and_includes():
    vertx = PlatformConfig.model_validate({
        "config": {"main": "groovy:Main", "includes": ["io.vertx~a~1", "io.vertx~b~1"], "worker": True},
        "info": {
            "description": "Sample",
            "keywords": ["x", "y"],
            "developers": [{"id": "dev1", "name": "Dev One"}],
            "licenses": [{"name": "Apache 2"}],
        },
    })
    data = build_descriptor(vertx)
    assert data["includes"] == "io.vertx~a~1,io.vertx~b~1"
    assert data["description"] == "Sample"
    assert data["developers"] == ["Dev One"]
    assert data["author"] == "Dev One"
    assert data["licenses"] == ["Apache 2"]
    assert data["worker"] is True
    validate_descriptor(data)


def test_config_wins_over_info():
    vertx = PlatformConfig.model_validate({
        "config": {"main": "Main", "description": "from config", "includes": []},
        "info": {"description": "from info"},
    })
    data = build_descriptor(vertx)
    assert data["description"] == "from config"
    assert "includes" not in data


@pytest.mark.parametrize("bad", [
    {"main": ""},
    {"main": "Main", "worker": "yes"},
    {"main": "Main", "includes": "not-a-module"},
    {"main": "Main", "multi-threaded": True},
])
def test_invalid_descriptors(bad):
    with pytest.raises(DescriptorValidationError):
        validate_descriptor(bad)


def test_write_replaces_previous_file(tmp_path):
    path = tmp_path / "conf" / "mod.json"
    write_descriptor(path, {"main": "Old"})
    write_descriptor(path, {"main": "New"})
    assert json.loads(path.read_text(encoding="utf-8")) == {"main": "New"}


def test_validate_descriptor_file(tmp_path, capsys):
    good = write_descriptor(tmp_path / "good.json", {"main": "Main"})
    bad = write_descriptor(tmp_path / "bad.json", {"main": 3})
    assert validate_descriptor_file(str(good)) is True
    assert validate_descriptor_file(str(bad)) is False
    assert validate_descriptor_file(str(tmp_path / "absent.json")) is False
    out = capsys.readouterr().out
    assert "Descriptor is valid" in out
    assert "Descriptor validation failed" in out
