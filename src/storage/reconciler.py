"""TopologyReconciler: keep a system's topology in step with the controller.

Registration admits a location only when its id is new to the system and
the controller reports the peripheral as attached. Reindexing refreshes
every location and drops whatever the controller no longer reports.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog

from storage.exceptions import ConflictError, MalformedInputError, ProtocolError, UnsupportedOperationError
from storage.indexer import StorageIndexer
from storage.model.locations import Processor, StorageLocation, Terminal
from storage.model.recipes import Recipe, RecipeItemSpecification, RecipeOutputSpecification
from storage.restocking import RestockingTrigger, find_triggered_recipes

logger = structlog.get_logger(__name__)


@dataclass
class ReindexReport:
    refreshed: list[str] = field(default_factory=list)
    removed_storage: list[str] = field(default_factory=list)
    removed_processors: list[Processor] = field(default_factory=list)
    removed_terminals: list[Terminal] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def removed_anything(self) -> bool:
        return bool(self.removed_storage or self.removed_processors or self.removed_terminals)


class TopologyReconciler:
    """Topology operations on one storage system.

    Every operation holds the system's lock for its whole duration, so two
    operations on one system never interleave. ``on_change`` runs after each
    successful change (the registry uses it to persist).
    """

    def __init__(self, handle, on_change: Callable[[], Awaitable[None]] | None = None):
        self.handle = handle
        self.on_change = on_change

    @property
    def system(self):
        return self.handle.system

    async def _changed(self, event: str, **kwargs) -> None:
        logger.info(event, system=self.system.name, **kwargs)
        if self.on_change is not None:
            await self.on_change()

    def _ensure_unregistered(self, location_id: str) -> None:
        if self.system.has_location(location_id):
            raise ConflictError(f"Location {location_id!r} is already registered in {self.system.name!r}")

    async def _ensure_present(self, indexer: StorageIndexer, location_id: str) -> None:
        if not await indexer.is_present(location_id):
            raise ConflictError(f"The controller of {self.system.name!r} has no peripheral {location_id!r}")

    # -------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------
    async def register_storage(self, location_id: str) -> StorageLocation:
        async with self.handle.lock:
            self._ensure_unregistered(location_id)
            indexer = StorageIndexer(self.handle.require_channel())
            await self._ensure_present(indexer, location_id)

            location = await indexer.index(StorageLocation(id=location_id))
            self.system.storage.append(location)
            await self._changed("storage_registered", location=location_id, slots=location.slot_count)
            return location

    async def register_processor(self, process: str, input_id: str, output_id: str) -> Processor:
        if input_id == output_id:
            raise MalformedInputError("A processor needs distinct input and output buffers")

        async with self.handle.lock:
            self._ensure_unregistered(input_id)
            self._ensure_unregistered(output_id)
            indexer = StorageIndexer(self.handle.require_channel())
            await self._ensure_present(indexer, input_id)
            await self._ensure_present(indexer, output_id)

            input_buffer = await indexer.index(StorageLocation(id=input_id))
            output_buffer = await indexer.index(StorageLocation(id=output_id))
            processor = Processor(process=process, input_buffer=input_buffer, output_buffer=output_buffer)
            self.system.processors.append(processor)
            await self._changed("processor_registered", process=process, input=input_id, output=output_id)
            return processor

    async def register_terminal(self, name: str, location_id: str) -> Terminal:
        async with self.handle.lock:
            if self.system.has_terminal(name):
                raise ConflictError(f"Terminal {name!r} already exists in {self.system.name!r}")
            self._ensure_unregistered(location_id)
            indexer = StorageIndexer(self.handle.require_channel())
            await self._ensure_present(indexer, location_id)

            terminal = Terminal(name=name, storage=await indexer.index(StorageLocation(id=location_id)))
            self.system.terminals.append(terminal)
            await self._changed("terminal_registered", terminal=name, location=location_id)
            return terminal

    async def register_recipe(
        self,
        process: str,
        inputs: list[RecipeItemSpecification],
        outputs: list[RecipeOutputSpecification],
    ) -> int:
        async with self.handle.lock:
            self.system.recipes.append(Recipe(process=process, inputs=list(inputs), outputs=list(outputs)))
            index = len(self.system.recipes) - 1
            await self._changed("recipe_registered", process=process, recipe=index)
            return index

    async def remove_recipe(self, index: int) -> Recipe:
        async with self.handle.lock:
            recipe = self.system.find_recipe(index)
            del self.system.recipes[index]
            await self._changed("recipe_removed", process=recipe.process, recipe=index)
            return recipe

    # -------------------------------------------------------------------
    # Reindexing
    # -------------------------------------------------------------------
    async def reindex(self) -> ReindexReport:
        """Refresh every location; drop those the controller reports as gone.

        Deletions happen after the whole pass. A probe or read that fails is
        recorded in the report and never causes a deletion.
        """
        async with self.handle.lock:
            indexer = StorageIndexer(self.handle.require_channel())
            report = ReindexReport()

            gone_storage = []
            for location in self.system.storage:
                present = await self._probe(indexer, location, report)
                if present is False:
                    gone_storage.append(location)
                elif present:
                    await self._refresh(indexer, location, report)

            gone_processors = []
            for processor in self.system.processors:
                present = [await self._probe(indexer, buffer, report) for buffer in processor.buffers]
                if False in present:
                    gone_processors.append(processor)
                elif all(present):
                    for buffer in processor.buffers:
                        await self._refresh(indexer, buffer, report)

            gone_terminals = []
            for terminal in self.system.terminals:
                present = await self._probe(indexer, terminal.storage, report)
                if present is False:
                    gone_terminals.append(terminal)
                elif present:
                    await self._refresh(indexer, terminal.storage, report)

            _discard(self.system.storage, gone_storage)
            _discard(self.system.processors, gone_processors)
            _discard(self.system.terminals, gone_terminals)
            report.removed_storage = [location.id for location in gone_storage]
            report.removed_processors = gone_processors
            report.removed_terminals = gone_terminals

            for location_id in report.removed_storage:
                logger.info("storage_removed", system=self.system.name, location=location_id)
            for processor in gone_processors:
                logger.info(
                    "processor_removed",
                    system=self.system.name,
                    input=processor.input_buffer.id,
                    output=processor.output_buffer.id,
                )
            for terminal in gone_terminals:
                logger.info("terminal_removed", system=self.system.name, terminal=terminal.name)

            await self._changed(
                "system_reindexed",
                refreshed=len(report.refreshed),
                removed=report.removed_anything,
                failures=len(report.failures),
            )
            return report

    async def _probe(self, indexer: StorageIndexer, location: StorageLocation, report: ReindexReport) -> bool | None:
        try:
            return await indexer.is_present(location.id)
        except ProtocolError as exc:
            report.failures[location.id] = str(exc)
            logger.warning("location_probe_failed", system=self.system.name, location=location.id, error=str(exc))
            return None

    async def _refresh(self, indexer: StorageIndexer, location: StorageLocation, report: ReindexReport) -> None:
        try:
            await indexer.index(location)
        except ProtocolError as exc:
            report.failures[location.id] = str(exc)
            logger.warning("location_index_failed", system=self.system.name, location=location.id, error=str(exc))
        else:
            report.refreshed.append(location.id)

    # -------------------------------------------------------------------
    # Processing and terminals
    # -------------------------------------------------------------------
    async def run_processors(self) -> list[RestockingTrigger]:
        """Report which recipes are due; nothing is moved or processed."""
        async with self.handle.lock:
            triggers = find_triggered_recipes(self.system)
            logger.info("processors_evaluated", system=self.system.name, due=len(triggers))
            return triggers

    async def withdraw(self, terminal_name: str, item_id: str, count: int) -> None:
        async with self.handle.lock:
            self.system.find_terminal(terminal_name)
            self.handle.require_channel()
            raise UnsupportedOperationError(f"Withdrawing {count}x {item_id} to a terminal is not supported")

    async def deposit(self, terminal_name: str) -> None:
        async with self.handle.lock:
            self.system.find_terminal(terminal_name)
            self.handle.require_channel()
            raise UnsupportedOperationError("Depositing from a terminal is not supported")


def _discard(entries: list, gone: list) -> None:
    doomed = {id(entry) for entry in gone}
    entries[:] = [entry for entry in entries if id(entry) not in doomed]
