"""Assemble a project into the `mods/<moduleName>` directory layout."""

import logging
import shutil
from pathlib import Path

from .descriptor import DESCRIPTOR_NAME

logger = logging.getLogger(__name__)


def descriptor_path(project) -> Path:
    return project.build_dir / "conf" / DESCRIPTOR_NAME


def _copy_tree_contents(src: Path, dest: Path) -> int:
    count = 0
    for path in sorted(src.rglob("*")):
        if path.is_file():
            target = dest / path.relative_to(src)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, target)
            count += 1
    return count


def copy_module(project) -> Path:
    """Copy non-test outputs, `mod.json` and bundled jars into the module directory.

    Jars come from the `compile` configuration minus everything `provided`
    (platform core, included modules and their libs).
    """
    module_dir = project.mods_dir / project.module_name

    for name, output in project.source_set_outputs().items():
        if not output.is_dir():
            logger.debug("Skipping missing output of source set %s: %s", name, output)
            continue
        copied = _copy_tree_contents(output, module_dir)
        logger.debug("Copied %d file(s) from source set %s", copied, name)

    modjson = descriptor_path(project)
    if modjson.is_file():
        module_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(modjson, module_dir / DESCRIPTOR_NAME)
    else:
        logger.warning("No module descriptor at %s; run generateModJson first", modjson)

    provided = project.configurations["provided"].files()
    lib_dir = module_dir / "lib"
    for jar in sorted(project.configurations["compile"].files() - provided):
        if not jar.is_file():
            continue
        lib_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(jar, lib_dir / jar.name)

    logger.info("Assembled module %s into %s", project.module_name, module_dir)
    return module_dir
