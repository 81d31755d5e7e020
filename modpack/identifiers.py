"""Module identifiers in `group~name~version` form."""

from dataclasses import dataclass
from typing import Iterable, List, Tuple, Union

SEPARATOR = "~"


class InvalidModuleIdentifier(ValueError):
    """Raised when a string is not a `group~name~version` module identifier."""


@dataclass(frozen=True)
class ModuleIdentifier:
    group: str
    name: str
    version: str

    @classmethod
    def parse(cls, notation: str) -> "ModuleIdentifier":
        parts = str(notation).strip().split(SEPARATOR)
        if len(parts) != 3 or not all(p.strip() for p in parts):
            raise InvalidModuleIdentifier(f"invalid module identifier: {notation!r}")
        group, name, version = (p.strip() for p in parts)
        for part in (group, name, version):
            # each part becomes a path segment under mods/
            if part in (".", "..") or "/" in part or "\\" in part:
                raise InvalidModuleIdentifier(f"invalid module identifier: {notation!r}")
        return cls(group, name, version)

    def repository_path(self) -> str:
        """Maven-style path of the module archive, relative to a repository root."""
        return "/".join(
            [*self.group.split("."), self.name, self.version, f"{self.name}-{self.version}-mod.zip"]
        )

    def __str__(self) -> str:
        return SEPARATOR.join((self.group, self.name, self.version))


def module_name(group: str, name: str, version: str) -> str:
    """Return the module name of a project, e.g. `com.example~hello~1.0`."""
    return str(ModuleIdentifier(str(group), str(name), str(version)))


def parse_includes(value: Union[None, str, List[Union[str, ModuleIdentifier]], Tuple[Union[str, ModuleIdentifier], ...]]) -> Tuple[ModuleIdentifier, ...]:
    """Normalize includes into an ordered tuple without duplicates.

    Accepts the comma-separated string used in `mod.json`, or a list or tuple
    of strings and identifiers.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        value = [v for v in value.split(",") if v.strip()]
    elif not isinstance(value, (list, tuple)):
        raise InvalidModuleIdentifier(f"includes must be a list or a comma-separated string: {value!r}")
    out = []
    seen = set()
    for item in value:
        ident = item if isinstance(item, ModuleIdentifier) else ModuleIdentifier.parse(item)
        if ident in seen:
            continue
        seen.add(ident)
        out.append(ident)
    return tuple(out)


def format_includes(includes: Iterable[ModuleIdentifier]) -> str:
    return ",".join(str(i) for i in includes)
