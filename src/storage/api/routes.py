"""FastAPI routes for the Storage domain: systems, topology and inventory."""

from fastapi import APIRouter, Depends, Request, Response

from storage.api.schemas import (
    CreateSystemRequest,
    InventoryEntry,
    InventoryResponse,
    LocationResponse,
    ProcessorResponse,
    RecipeCreatedResponse,
    RegisterProcessorRequest,
    RegisterRecipeRequest,
    RegisterStorageRequest,
    RegisterTerminalRequest,
    ReindexResponse,
    RemovedProcessor,
    RestockingTriggerSchema,
    RunProcessorsResponse,
    StatusResponse,
    SystemCreatedResponse,
    SystemNamesResponse,
    TerminalResponse,
    WithdrawRequest,
)
from storage.model.locations import StorageLocation
from storage.model.recipes import RecipeItemSpecification, RecipeOutputSpecification
from storage.model.serialization import dump_system
from storage.registry import SystemRegistry


def get_registry(request: Request) -> SystemRegistry:
    return request.app.state.registry


def _location(location: StorageLocation) -> LocationResponse:
    return LocationResponse(
        id=location.id,
        slots=location.slot_count,
        occupied=sum(1 for _ in location.stacks()),
    )


# ---------------------------------------------------------------------------
# Systems Router
# ---------------------------------------------------------------------------
systems_router = APIRouter(prefix="/systems", tags=["systems"])


@systems_router.get("", response_model=SystemNamesResponse)
async def list_systems(registry: SystemRegistry = Depends(get_registry)) -> SystemNamesResponse:
    return SystemNamesResponse(systems=registry.names())


@systems_router.post("", status_code=201, response_model=SystemCreatedResponse)
async def create_system(
    body: CreateSystemRequest, registry: SystemRegistry = Depends(get_registry)
) -> SystemCreatedResponse:
    handle = registry.create(body.name)
    return SystemCreatedResponse(name=handle.name)


@systems_router.get("/{name}/check", status_code=204)
async def check_system(name: str, registry: SystemRegistry = Depends(get_registry)) -> Response:
    registry.get(name)
    return Response(status_code=204)


@systems_router.get("/{name}")
async def get_system(name: str, registry: SystemRegistry = Depends(get_registry)) -> dict:
    handle = registry.get(name)
    async with handle.lock:
        snapshot = dump_system(handle.system)
    snapshot["controller_connected"] = handle.connected
    return snapshot


@systems_router.get("/{name}/inventory", response_model=InventoryResponse)
async def get_inventory(name: str, registry: SystemRegistry = Depends(get_registry)) -> InventoryResponse:
    handle = registry.get(name)
    async with handle.lock:
        totals = handle.system.inventory()
    return InventoryResponse(
        system=name,
        items=[
            InventoryEntry(id=item.item_id, display_name=item.display_name, nbt=item.nbt, count=count)
            for item, count in totals
        ],
    )


# ---------------------------------------------------------------------------
# Topology
# ---------------------------------------------------------------------------
@systems_router.post("/{name}/storage", status_code=201, response_model=LocationResponse)
async def register_storage(
    name: str, body: RegisterStorageRequest, registry: SystemRegistry = Depends(get_registry)
) -> LocationResponse:
    location = await registry.reconciler(name).register_storage(body.id)
    return _location(location)


@systems_router.post("/{name}/processors", status_code=201, response_model=ProcessorResponse)
async def register_processor(
    name: str, body: RegisterProcessorRequest, registry: SystemRegistry = Depends(get_registry)
) -> ProcessorResponse:
    processor = await registry.reconciler(name).register_processor(body.process, body.input_id, body.output_id)
    return ProcessorResponse(
        process=processor.process,
        input=_location(processor.input_buffer),
        output=_location(processor.output_buffer),
    )


@systems_router.post("/{name}/terminals", status_code=201, response_model=TerminalResponse)
async def register_terminal(
    name: str, body: RegisterTerminalRequest, registry: SystemRegistry = Depends(get_registry)
) -> TerminalResponse:
    terminal = await registry.reconciler(name).register_terminal(body.name, body.id)
    return TerminalResponse(name=terminal.name, storage=_location(terminal.storage))


@systems_router.post("/{name}/recipes", status_code=201, response_model=RecipeCreatedResponse)
async def register_recipe(
    name: str, body: RegisterRecipeRequest, registry: SystemRegistry = Depends(get_registry)
) -> RecipeCreatedResponse:
    reconciler = registry.reconciler(name)
    inputs = [RecipeItemSpecification(item_id=spec.item_id, count=spec.count) for spec in body.inputs]
    outputs = [
        RecipeOutputSpecification(
            output=RecipeItemSpecification(item_id=spec.output.item_id, count=spec.output.count),
            min_output_stock=spec.min_output_stock,
            max_output_stock=spec.max_output_stock,
        )
        for spec in body.outputs
    ]
    index = await reconciler.register_recipe(body.process, inputs, outputs)
    return RecipeCreatedResponse(index=index)


@systems_router.delete("/{name}/recipes/{index}", response_model=StatusResponse)
async def remove_recipe(name: str, index: int, registry: SystemRegistry = Depends(get_registry)) -> StatusResponse:
    await registry.reconciler(name).remove_recipe(index)
    return StatusResponse()


@systems_router.post("/{name}/reindex", response_model=ReindexResponse)
async def reindex(name: str, registry: SystemRegistry = Depends(get_registry)) -> ReindexResponse:
    report = await registry.reconciler(name).reindex()
    return ReindexResponse(
        refreshed=report.refreshed,
        removed_storage=report.removed_storage,
        removed_processors=[
            RemovedProcessor(
                process=processor.process,
                input_id=processor.input_buffer.id,
                output_id=processor.output_buffer.id,
            )
            for processor in report.removed_processors
        ],
        removed_terminals=[terminal.name for terminal in report.removed_terminals],
        failures=report.failures,
    )


# ---------------------------------------------------------------------------
# Processing and terminals
# ---------------------------------------------------------------------------
@systems_router.post("/{name}/processors/run", response_model=RunProcessorsResponse)
async def run_processors(name: str, registry: SystemRegistry = Depends(get_registry)) -> RunProcessorsResponse:
    triggers = await registry.reconciler(name).run_processors()
    return RunProcessorsResponse(
        triggered=[
            RestockingTriggerSchema(
                recipe_index=trigger.recipe_index,
                process=trigger.process,
                output_buffer=trigger.output_buffer,
                item_id=trigger.item_id,
                stock=trigger.stock,
                min_output_stock=trigger.min_output_stock,
                max_output_stock=trigger.max_output_stock,
                deficit=trigger.deficit,
            )
            for trigger in triggers
        ]
    )


@systems_router.post("/{name}/terminals/{terminal}/withdraw", response_model=StatusResponse)
async def withdraw(
    name: str, terminal: str, body: WithdrawRequest, registry: SystemRegistry = Depends(get_registry)
) -> StatusResponse:
    await registry.reconciler(name).withdraw(terminal, body.item_id, body.count)
    return StatusResponse()


@systems_router.post("/{name}/terminals/{terminal}/deposit", response_model=StatusResponse)
async def deposit(name: str, terminal: str, registry: SystemRegistry = Depends(get_registry)) -> StatusResponse:
    await registry.reconciler(name).deposit(terminal)
    return StatusResponse()
