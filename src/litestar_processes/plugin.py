"""Litestar plugin for process engine integration.

This module provides the ProcessEnginePlugin for seamless integration of
litestar-processes with Litestar applications.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar.di import Provide
from litestar.plugins import InitPluginProtocol

from litestar_processes.core.definition import ProcessDefinition
from litestar_processes.core.types import DefinitionStatus
from litestar_processes.directory import StaticDirectory
from litestar_processes.engine.engine import ProcessEngine
from litestar_processes.exception_handlers import process_error_handler
from litestar_processes.exceptions import ProcessError, ValidationFailedError
from litestar_processes.notifications import LoggingNotifier
from litestar_processes.store.memory import InMemoryProcessStore

if TYPE_CHECKING:
    from collections.abc import Mapping

    from litestar import Litestar
    from litestar.config.app import AppConfig

    from litestar_processes.config import EngineConfig
    from litestar_processes.core.protocols import Directory, ProcessStore, TaskNotifier

__all__ = ["ProcessEnginePlugin", "ProcessEnginePluginConfig"]

logger = logging.getLogger(__name__)


@dataclass
class ProcessEnginePluginConfig:
    """Configuration for the ProcessEnginePlugin.

    Attributes:
        engine: Optional pre-configured ProcessEngine. If not provided, one is
            built from ``store``, ``directory``, ``notifier`` and ``engine_config``.
        store: Persistence collaborator. Defaults to an InMemoryProcessStore.
        directory: Principal directory. Defaults to an empty StaticDirectory.
        notifier: Task notifier. Defaults to a LoggingNotifier.
        engine_config: Engine configuration.
        auto_activate_definitions: Definitions (or their serialized form) to
            define and activate on app startup. Versions that are already
            active are left untouched. Serialized definitions must carry an
            ``"id"`` so that restarts address the same process.
        dependency_key_engine: The key used for dependency injection of the
            ProcessEngine. Defaults to "process_engine".
        register_exception_handlers: Whether to map engine errors to HTTP
            responses. Defaults to True.
    """

    engine: ProcessEngine | None = None
    store: ProcessStore | None = None
    directory: Directory | None = None
    notifier: TaskNotifier | None = None
    engine_config: EngineConfig | None = None
    auto_activate_definitions: list[ProcessDefinition | Mapping[str, Any]] = field(default_factory=list)
    dependency_key_engine: str = "process_engine"
    register_exception_handlers: bool = True


class ProcessEnginePlugin(InitPluginProtocol):
    """Litestar plugin for process management.

    This plugin integrates litestar-processes with a Litestar application,
    providing dependency injection for the ProcessEngine.

    Example:
        Basic usage with auto-activation::

            from litestar import Litestar
            from litestar_processes import ProcessEnginePlugin, ProcessEnginePluginConfig

            app = Litestar(
                plugins=[
                    ProcessEnginePlugin(
                        config=ProcessEnginePluginConfig(
                            directory=StaticDirectory({"manager": ["bob"]}),
                            auto_activate_definitions=[expense_approval],
                        )
                    )
                ]
            )

        Using in a route handler::

            from litestar import post
            from litestar_processes import ProcessEngine


            @post("/expenses/{definition_id:str}/start")
            async def start_expense(
                definition_id: str,
                data: dict[str, Any],
                process_engine: ProcessEngine,
            ) -> dict[str, Any]:
                instance = await process_engine.start_instance(definition_id, data, started_by="alice")
                return {"instance_id": instance.id, "status": instance.status}
    """

    __slots__ = ("_config", "_engine")

    def __init__(self, config: ProcessEnginePluginConfig | None = None) -> None:
        """Initialize the plugin.

        Args:
            config: Optional configuration for the plugin.
        """
        self._config = config or ProcessEnginePluginConfig()
        self._engine: ProcessEngine | None = None

    @property
    def engine(self) -> ProcessEngine:
        """Get the process engine.

        Returns:
            The ProcessEngine instance.

        Raises:
            RuntimeError: If accessed before plugin initialization.
        """
        if self._engine is None:
            msg = "ProcessEnginePlugin has not been initialized. Access engine after app init."
            raise RuntimeError(msg)
        return self._engine

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Initialize the plugin when the Litestar app is created.

        This method:
        1. Creates or uses the provided ProcessEngine
        2. Adds the engine dependency provider to the app config
        3. Registers the engine error handler if enabled
        4. Schedules activation of auto_activate_definitions on startup

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """
        config = self._config
        self._engine = config.engine or ProcessEngine(
            store=config.store or InMemoryProcessStore(),
            directory=config.directory or StaticDirectory(),
            notifier=config.notifier or LoggingNotifier(),
            config=config.engine_config,
        )

        def provide_engine() -> ProcessEngine:
            return self._engine  # type: ignore[return-value]

        app_config.dependencies[config.dependency_key_engine] = Provide(
            provide_engine,
            sync_to_thread=False,
        )

        if config.register_exception_handlers:
            app_config.exception_handlers[ProcessError] = process_error_handler  # type: ignore[assignment]

        if config.auto_activate_definitions:
            app_config.on_startup.append(self._activate_definitions)

        return app_config

    async def _activate_definitions(self, app: Litestar) -> None:  # noqa: ARG002
        engine = self.engine
        active = {(item.id, item.version) for item in await engine.list_definitions(DefinitionStatus.ACTIVE)}

        for item in self._config.auto_activate_definitions:
            if isinstance(item, ProcessDefinition):
                definition = item
            elif not item.get("id"):
                msg = f"Auto-activated definition '{item.get('name', '')}' must declare an id"
                raise ValidationFailedError([msg])
            else:
                definition = ProcessDefinition.from_dict(item)
            if (definition.id, definition.version) in active:
                logger.debug("Process %s version %s is already active", definition.id, definition.version)
                continue

            await engine.define_workflow(definition)
            await engine.activate_workflow(definition.id, definition.version)
