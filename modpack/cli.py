"""Command line entry point.

    modpack resolve   install includes and show what was registered
    modpack generate  write build/conf/mod.json
    modpack assemble  build mods/<moduleName>
    modpack validate  check a mod.json against the schema
    modpack scaffold  create a new module project
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import DEFAULT_PROJECT_FILE, PluginSettings, ProjectConfigError
from .create_module import MAIN_SOURCES, scaffold
from .descriptor import DescriptorValidationError
from .installer import ModuleInstallError
from .plugin import ProjectPlugin
from .project import Project, TaskCycleError, UnknownTaskError
from .resolver import IncludeResolutionError, IncludeTimeoutError
from .validator import validate_descriptor_file

logger = logging.getLogger(__name__)

BUILD_ERRORS = (
    ProjectConfigError,
    IncludeResolutionError,
    IncludeTimeoutError,
    DescriptorValidationError,
    ModuleInstallError,
    UnknownTaskError,
    TaskCycleError,
)


def _load(args, plugin: ProjectPlugin) -> Project:
    project = Project.load(args.project_dir, args.project_file)
    plugin.apply(project)
    project.evaluate()
    return project


def _print_report(plugin: ProjectPlugin) -> None:
    report = plugin.report
    if report is None or not report.outcomes:
        print("No includes declared")
        return
    for outcome in report.outcomes:
        suffix = f" ({outcome.message})" if outcome.message else ""
        print(f"{outcome.identifier}: {outcome.kind.value}{suffix}")


def cmd_resolve(args, plugin: ProjectPlugin) -> int:
    project = _load(args, plugin)
    _print_report(plugin)
    for f in sorted(project.configurations["vertxlibs"].files()):
        print(f"  lib {f}")
    return 0


def cmd_run_task(task: str):
    def run(args, plugin: ProjectPlugin) -> int:
        project = _load(args, plugin)
        executed = project.tasks.run(task)
        print(f"Executed: {', '.join(executed)}")
        return 0

    return run


def cmd_validate(args, plugin: ProjectPlugin) -> int:
    return 0 if validate_descriptor_file(args.descriptor) else 1


def cmd_scaffold(args, plugin: ProjectPlugin) -> int:
    scaffold(args.group, args.name, args.version, Path(args.out), args.lang)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="modpack", description="Assemble platform modules")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    p.add_argument("-C", "--project-dir", default=".", help="project root (default: current directory)")
    p.add_argument("-f", "--project-file", default=DEFAULT_PROJECT_FILE)
    p.add_argument("--fail-on-install-error", action="store_true", default=None,
                   help="fail the build when an include cannot be installed")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("resolve", help="install includes").set_defaults(func=cmd_resolve)
    sub.add_parser("generate", help="generate mod.json").set_defaults(func=cmd_run_task("generateModJson"))
    sub.add_parser("assemble", help="assemble the module").set_defaults(func=cmd_run_task("copyMod"))

    v = sub.add_parser("validate", help="validate a mod.json")
    v.add_argument("descriptor")
    v.set_defaults(func=cmd_validate)

    s = sub.add_parser("scaffold", help="create a module project")
    s.add_argument("--group", required=True)
    s.add_argument("--name", required=True)
    s.add_argument("--version", default="0.1.0-SNAPSHOT")
    s.add_argument("--lang", default="java", choices=sorted(MAIN_SOURCES))
    s.add_argument("--out", default="./new_module")
    s.set_defaults(func=cmd_scaffold)
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    plugin = None
    try:
        settings = PluginSettings.from_env()
        if args.fail_on_install_error:
            settings.fail_on_install_error = True
        plugin = ProjectPlugin(settings=settings)
        return args.func(args, plugin)
    except BUILD_ERRORS as e:
        logger.debug("Build failed", exc_info=True)
        print(f"BUILD FAILED: {e}", file=sys.stderr)
        return 1
    finally:
        if plugin is not None:
            plugin.close()


if __name__ == "__main__":
    sys.exit(main())
