"""Module descriptor (`mod.json`) generation and validation."""

import json
import logging
from pathlib import Path
from typing import Any, Dict

from jsonschema import ValidationError, validate

from .config import PlatformConfig
from .identifiers import format_includes, parse_includes

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "mod-schema.json"
DESCRIPTOR_NAME = "mod.json"


class DescriptorValidationError(ValueError):
    pass


def load_schema() -> Dict[str, Any]:
    with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
        return json.load(f)


def build_descriptor(vertx: PlatformConfig) -> Dict[str, Any]:
    """Serialize the `config` block, folding in module info.

    Includes are written in the comma-separated form the platform reads.
    Keys already present in `config` win over info fields.
    """
    data: Dict[str, Any] = dict(vertx.config)
    includes = parse_includes(data.get("includes"))
    if includes:
        data["includes"] = format_includes(includes)
    else:
        data.pop("includes", None)

    info = vertx.info
    extras: Dict[str, Any] = {}
    if info.description:
        extras["description"] = info.description
    if info.homepage:
        extras["homepage"] = info.homepage
    if info.keywords:
        extras["keywords"] = list(info.keywords)
    if info.developers:
        extras["developers"] = [d.name or d.id for d in info.developers if d.name or d.id]
        if extras["developers"]:
            extras.setdefault("author", extras["developers"][0])
    if info.licenses:
        extras["licenses"] = [lic.name for lic in info.licenses]
    for key, value in extras.items():
        data.setdefault(key, value)
    return data


def validate_descriptor(data: Dict[str, Any]) -> None:
    try:
        validate(instance=data, schema=load_schema())
    except ValidationError as e:
        raise DescriptorValidationError(f"invalid module descriptor: {e.message}") from e


def write_descriptor(path, data: Dict[str, Any]) -> Path:
    """Write `data` to `path`, replacing any previous descriptor."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")
    logger.debug("Wrote module descriptor %s", p)
    return p
