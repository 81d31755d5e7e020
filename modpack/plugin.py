"""Plugin that configures a project as a platform module.

Applying the plugin:
- applies the language plugin and creates the dependency configurations,
- after evaluation, declares the platform core jars and resolves includes,
- adds the `generateModJson` and `copyMod` tasks and makes `test` depend on
  `copyMod`.
"""

import logging
from typing import Optional

from .assemble import copy_module, descriptor_path
from .config import PluginSettings
from .configurations import ExternalDependency, FileCollection
from .descriptor import build_descriptor, validate_descriptor, write_descriptor
from .installer import ModuleInstaller, create_default_installer
from .project import Task
from .resolver import IncludeResolver, IncludeTimeoutError, ResolutionReport

logger = logging.getLogger(__name__)

PLUGIN_ID = "vertx"
TASK_GROUP = "vert.x"

PLATFORM_CORE_ARTIFACTS = ("io.vertx:vertx-core", "io.vertx:vertx-platform", "io.vertx:testtools")

REPOSITORIES = (
    "https://repo.maven.apache.org/maven2",
    "https://oss.sonatype.org/content/repositories/snapshots",
)


class ProjectPlugin:
    def __init__(self, installer: Optional[ModuleInstaller] = None,
                 settings: Optional[PluginSettings] = None) -> None:
        self.settings = settings or PluginSettings.from_env()
        self._installer = installer
        self._owns_installer = installer is None
        self.report: Optional[ResolutionReport] = None
        self._timed_out = False

    def apply(self, project) -> None:
        self.configure_project(project)
        self.register_includes(project)
        self.add_module_tasks(project)
        project.apply_plugin(PLUGIN_ID)

    def close(self) -> None:
        """Shut down an installer this plugin created itself.

        After a timed out resolution the stuck installs are not waited for.
        """
        if self._installer is not None and self._owns_installer:
            self._installer.close(wait=not self._timed_out)
            self._installer = None

    def configure_project(self, project) -> None:
        logger.info("Configuring %s", project)
        project.apply_plugin(project.vertx.platform.language)
        project.source_compatibility = "1.7"
        project.target_compatibility = "1.7"
        project.repositories = list(REPOSITORIES)

        confs = project.configurations
        provided = confs.maybe_create("provided")  # compile time only, never packed
        core = confs.maybe_create("vertxcore")
        includes = confs.maybe_create("vertxincludes")
        libs = confs.maybe_create("vertxlibs")
        compile_ = confs.maybe_create("compile")
        provided.extends_from(core, includes, libs)
        compile_.extends_from(provided)

        for conf_name, jars in project.spec.dependencies.items():
            conf = confs.maybe_create(conf_name)
            if jars:
                conf.add(FileCollection.of(*(project.file(j) for j in jars)))

        def declare_core(p) -> None:
            version = p.vertx.platform.version
            for artifact in PLATFORM_CORE_ARTIFACTS:
                core.add(ExternalDependency(f"{artifact}:{version}"))

        project.after_evaluate(declare_core)

    def installer_for(self, project) -> ModuleInstaller:
        if self._installer is None:
            self._installer = create_default_installer(project.mods_dir, self.settings, project.root_dir)
        return self._installer

    def register_includes(self, project) -> None:
        def resolve(p) -> None:
            includes = p.vertx.includes
            if not includes:
                self.report = ResolutionReport()
                return
            resolver = IncludeResolver(
                self.installer_for(p),
                p.configurations,
                p.mods_dir,
                fail_on_error=self.settings.fail_on_install_error,
                timeout=self.settings.install_timeout,
                log_dir=p.build_dir / "logs",
            )
            try:
                self.report = resolver.resolve_includes(includes)
            except IncludeTimeoutError:
                self._timed_out = True
                raise

        project.after_evaluate(resolve)

    def add_module_tasks(self, project) -> None:
        def generate_mod_json(p) -> None:
            data = build_descriptor(p.vertx)
            validate_descriptor(data)
            write_descriptor(descriptor_path(p), data)

        project.tasks.add(Task(
            "generateModJson",
            action=generate_mod_json,
            group=TASK_GROUP,
            description="Generate the module descriptor",
        ))
        project.tasks.add(Task(
            "copyMod",
            action=copy_module,
            depends_on=["classes", "generateModJson"],
            group=TASK_GROUP,
            description="Assemble the module into the local mods directory",
        ))
        project.tasks["test"].depends("copyMod")
