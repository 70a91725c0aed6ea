"""
Sysconverge Core - declarative convergence of local sysadmin accounts.

Apply Pipeline: Load declarations → Register → Build graph → Schedule → Converge
Plan Pipeline: Load declarations → Register → Build graph → Schedule → Inspect only
"""

import importlib.util
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pydantic

from .adapters.base import OsAdapter
from .adapters.linux import LinuxAdapter
from .assembly import GraphBuilder, StageScheduler
from .errors import ConfigurationError
from .forge import ConvergenceExecutor
from .models import PlanEntry, RunReport, Stage
from .registry import ResourceRegistry
from .resources import MailAliasResource, NotificationPackagesResource, Resource
from .settings import SysconvergeSettings, get_settings
from .sysadmin import Sysadmin

logger = logging.getLogger(__name__)

Declaration = Sysadmin | Resource


class SysconvergeCore:
    """Main coordinator for the Sysconverge pipeline."""

    def __init__(
        self,
        adapter: OsAdapter | None = None,
        settings: SysconvergeSettings | None = None,
    ):
        """
        Initialize SysconvergeCore.

        Args:
            adapter: OS primitives (defaults to a LinuxAdapter built from settings)
            settings: Settings (defaults to the global settings)
        """
        self.settings = settings or get_settings()
        self.adapter = adapter or LinuxAdapter.from_settings(self.settings)
        self.graph_builder = GraphBuilder()
        self.scheduler = StageScheduler()

        logger.info("SysconvergeCore initialized")

    def apply(self, main_file: Path) -> RunReport:
        """
        Full pipeline: load → register → schedule → converge.

        Args:
            main_file: Path to main.py with Sysadmin/Resource declarations

        Returns:
            RunReport with the terminal status of every resource
        """
        logger.info(f"Starting Sysconverge apply for: {main_file}")
        return self.converge(self._load_declarations(main_file))

    def plan(self, main_file: Path) -> list[PlanEntry]:
        """
        Plan mode: inspect every resource and report expected changes.

        Args:
            main_file: Path to main.py

        Returns:
            PlanEntry per resource, in execution order
        """
        logger.info(f"Starting Sysconverge plan for: {main_file}")
        registry, ordered = self.prepare(self._load_declarations(main_file))
        executor = ConvergenceExecutor(on_stage_complete=self._sealer(registry))
        return executor.plan(ordered, self.adapter)

    def converge(self, declarations: Iterable[Declaration]) -> RunReport:
        """Converge already loaded declarations.

        Raises:
            ValidationError: Before any mutation, on invalid declarations
            CycleError: Before any mutation, on dependency cycles
        """
        registry, ordered = self.prepare(declarations)
        executor = ConvergenceExecutor(on_stage_complete=self._sealer(registry))
        report = executor.apply(ordered, self.adapter)
        logger.info("Sysconverge apply complete")
        return report

    def prepare(
        self, declarations: Iterable[Declaration]
    ) -> tuple[ResourceRegistry, list[Resource]]:
        """Register declarations and compute the execution order.

        Every validation happens here, so a failure leaves the system untouched.
        """
        registry = self._build_registry(declarations)
        graph = self.graph_builder.build(registry.resources())
        ordered = self.scheduler.schedule(graph)
        logger.info(f"Scheduled {len(ordered)} resources")
        return registry, ordered

    def _build_registry(self, declarations: Iterable[Declaration]) -> ResourceRegistry:
        registry = ResourceRegistry()
        for declaration in declarations:
            if isinstance(declaration, Sysadmin):
                declaration.register(registry, self.settings)
            elif isinstance(declaration, Resource):
                registry.register(declaration)
            else:
                raise ConfigurationError(
                    f"Unsupported declaration: {type(declaration).__name__}"
                )

        if registry.contributions():
            aliases = registry.register(MailAliasResource.from_source(registry.contributions))
            registry.register(
                NotificationPackagesResource.following(
                    aliases, self.settings.resolved_notification_packages()
                )
            )
        return registry

    @staticmethod
    def _sealer(registry: ResourceRegistry):
        def seal(stage: Stage) -> None:
            if stage == Stage.MAIN:
                registry.seal()
        return seal

    def _load_declarations(self, main_file: Path) -> list[Declaration]:
        """
        Load declarations from main.py by executing it.

        Module-level Sysadmin and Resource instances are collected, including
        those inside module-level lists and tuples, in definition order.

        Args:
            main_file: Path to main.py

        Returns:
            List of Sysadmin and Resource objects
        """
        if not main_file.exists():
            raise FileNotFoundError(f"File not found: {main_file}")

        # Load the module dynamically
        spec = importlib.util.spec_from_file_location("sysconverge_main", main_file)
        if spec is None or spec.loader is None:
            raise ImportError(f"Could not load {main_file}")

        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except pydantic.ValidationError as e:
            raise ConfigurationError(f"Invalid declaration in {main_file}: {e}") from e

        declarations: list[Declaration] = []
        seen: set[int] = set()

        def collect(name: str, obj: Any) -> None:
            if isinstance(obj, (Sysadmin, Resource)):
                if id(obj) not in seen:
                    seen.add(id(obj))
                    declarations.append(obj)
                    logger.debug(f"Found declaration: {name} ({type(obj).__name__})")
            elif isinstance(obj, (list, tuple)):
                for item in obj:
                    collect(name, item)

        for name, obj in vars(module).items():
            if not name.startswith("__"):
                collect(name, obj)

        if not declarations:
            raise ConfigurationError(f"No declarations found in {main_file}")

        return declarations
