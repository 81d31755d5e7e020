"""Include resolution: install declared modules and register them as dependencies.

Each declared include is handed to the installer at once; every install
completes its own future from the installer's thread. The calling thread joins
all futures, classifies the results and then merges the dependency
registrations sequentially, in declared order, so no host configuration is
mutated from installer threads.

Failed installs are logged and do not fail the pass unless `fail_on_error`
is set. When the join times out, the outcomes that did arrive are still
counted and logged, and nothing is registered.
"""

import enum
import logging
from concurrent.futures import Future, InvalidStateError, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from prometheus_client import Counter

from .configurations import ConfigurationContainer, FileCollection, FileTree
from .identifiers import ModuleIdentifier, parse_includes
from .install_log import record_install
from .installer import InstallResult, ModuleAlreadyInstalledError

logger = logging.getLogger(__name__)

INCLUDES_CONFIGURATION = "vertxincludes"
LIBS_CONFIGURATION = "vertxlibs"
LIB_PATTERN = "lib/*.jar"

# Metrics
MET_INSTALL_ATTEMPTS = Counter("modpack_install_attempts_total", "Module install attempts")
MET_INSTALL_SUCCESS = Counter("modpack_install_success_total", "Modules installed")
MET_INSTALL_ALREADY = Counter("modpack_install_already_installed_total", "Modules found already installed")
MET_INSTALL_FAILED = Counter("modpack_install_failed_total", "Module installs that failed")


class OutcomeKind(enum.Enum):
    SUCCESS = "success"
    ALREADY_INSTALLED = "already_installed"
    FAILED = "failed"


@dataclass(frozen=True)
class InstallOutcome:
    identifier: ModuleIdentifier
    kind: OutcomeKind
    message: Optional[str] = None

    @property
    def registers(self) -> bool:
        return self.kind is not OutcomeKind.FAILED

    @classmethod
    def from_result(cls, result: InstallResult) -> "InstallOutcome":
        if result.succeeded:
            return cls(result.identifier, OutcomeKind.SUCCESS)
        if isinstance(result.cause, ModuleAlreadyInstalledError):
            return cls(result.identifier, OutcomeKind.ALREADY_INSTALLED)
        return cls(result.identifier, OutcomeKind.FAILED, str(result.cause) or type(result.cause).__name__)


@dataclass
class ResolutionReport:
    outcomes: List[InstallOutcome] = field(default_factory=list)

    @property
    def failed(self) -> List[InstallOutcome]:
        return [o for o in self.outcomes if o.kind is OutcomeKind.FAILED]

    @property
    def resolved(self) -> List[ModuleIdentifier]:
        return [o.identifier for o in self.outcomes if o.registers]

    @property
    def ok(self) -> bool:
        return not self.failed


class IncludeResolutionError(RuntimeError):
    """Raised when `fail_on_error` is set and at least one include failed."""

    def __init__(self, failed: List[InstallOutcome]):
        self.failed = failed
        details = "; ".join(f"{o.identifier}: {o.message}" for o in failed)
        super().__init__(f"{len(failed)} module include(s) failed to install: {details}")


class IncludeTimeoutError(RuntimeError):
    """Raised when some installs did not report back within the timeout."""

    def __init__(self, pending: List[ModuleIdentifier], timeout: float):
        self.pending = pending
        names = ", ".join(str(p) for p in pending)
        super().__init__(f"timed out after {timeout}s waiting for module installs: {names}")


class IncludeResolver:
    def __init__(
        self,
        installer,
        configurations: ConfigurationContainer,
        mods_dir,
        *,
        fail_on_error: bool = False,
        timeout: Optional[float] = None,
        log_dir=None,
    ) -> None:
        self.installer = installer
        self.configurations = configurations
        self.mods_dir = Path(mods_dir)
        self.fail_on_error = fail_on_error
        self.timeout = timeout
        self.log_dir = log_dir

    def resolve_includes(self, includes: Iterable) -> ResolutionReport:
        """Install every include and register the installed ones.

        Returns once each include has reported exactly one outcome.
        """
        idents = parse_includes(includes)
        report = ResolutionReport()
        if not idents:
            return report

        futures = self._dispatch(idents)
        _, not_done = wait(futures.values(), timeout=self.timeout)
        if not_done:
            pending = [i for i, f in futures.items() if f in not_done]
            for ident in idents:
                if futures[ident] not in not_done:
                    self._report(InstallOutcome.from_result(futures[ident].result()))
            logger.error("Module installs did not complete: %s", ", ".join(str(p) for p in pending))
            raise IncludeTimeoutError(pending, self.timeout)

        for ident in idents:
            outcome = InstallOutcome.from_result(futures[ident].result())
            self._report(outcome)
            report.outcomes.append(outcome)

        for outcome in report.outcomes:
            if outcome.registers:
                self._register(outcome.identifier)

        if report.failed and self.fail_on_error:
            raise IncludeResolutionError(report.failed)
        return report

    def _dispatch(self, idents: Tuple[ModuleIdentifier, ...]) -> Dict[ModuleIdentifier, Future]:
        futures: Dict[ModuleIdentifier, Future] = {}
        for ident in idents:
            future: Future = Future()
            futures[ident] = future
            logger.info("Installing Module %s...", ident)
            MET_INSTALL_ATTEMPTS.inc()
            try:
                self.installer.install_module(ident, self._completion(ident, future))
            except Exception as e:  # a refused dispatch still yields one outcome
                logger.debug("Dispatch of %s failed: %s", ident, e)
                if not future.done():
                    future.set_result(InstallResult(ident, e))
        return futures

    @staticmethod
    def _completion(ident: ModuleIdentifier, future: Future):
        def handle(result: InstallResult) -> None:
            try:
                future.set_result(result)
            except InvalidStateError:
                logger.warning("Ignoring repeated install result for %s", ident)

        return handle

    def _report(self, outcome: InstallOutcome) -> None:
        if outcome.kind is OutcomeKind.SUCCESS:
            MET_INSTALL_SUCCESS.inc()
            logger.info("Installation of %s: successful", outcome.identifier)
        elif outcome.kind is OutcomeKind.ALREADY_INSTALLED:
            MET_INSTALL_ALREADY.inc()
            logger.info("Installation of %s: already installed", outcome.identifier)
        else:
            MET_INSTALL_FAILED.inc()
            logger.warning("Installation of %s: %s", outcome.identifier, outcome.message)
        if self.log_dir is not None:
            record_install(self.log_dir, {
                "module": str(outcome.identifier),
                "outcome": outcome.kind.value,
                "message": outcome.message,
            })

    def _register(self, ident: ModuleIdentifier) -> None:
        logger.info("Adding %s to dependencies", ident)
        module_dir = self.mods_dir / str(ident)
        self.configurations[INCLUDES_CONFIGURATION].add(FileCollection.of(module_dir))
        self.configurations[LIBS_CONFIGURATION].add(FileTree(module_dir, LIB_PATTERN))
