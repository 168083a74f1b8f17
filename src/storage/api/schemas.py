"""Pydantic request/response schemas for the Storage API.

These are external contracts, kept separate from the domain model.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
class CreateSystemRequest(BaseModel):
    name: str = Field(min_length=1)


class RegisterStorageRequest(BaseModel):
    id: str = Field(min_length=1)


class RegisterProcessorRequest(BaseModel):
    process: str = Field(min_length=1)
    input_id: str = Field(min_length=1)
    output_id: str = Field(min_length=1)


class RegisterTerminalRequest(BaseModel):
    name: str = Field(min_length=1)
    id: str = Field(min_length=1)


class RecipeItemSchema(BaseModel):
    item_id: str = Field(min_length=1)
    count: int = Field(ge=1)


class RecipeOutputSchema(BaseModel):
    output: RecipeItemSchema
    min_output_stock: int = Field(ge=0, default=0)
    max_output_stock: int = Field(ge=0, default=0)


class RegisterRecipeRequest(BaseModel):
    process: str = Field(min_length=1)
    inputs: list[RecipeItemSchema] = Field(default_factory=list)
    outputs: list[RecipeOutputSchema] = Field(default_factory=list)


class WithdrawRequest(BaseModel):
    item_id: str = Field(min_length=1)
    count: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class SystemNamesResponse(BaseModel):
    systems: list[str]


class SystemCreatedResponse(BaseModel):
    name: str


class LocationResponse(BaseModel):
    id: str
    slots: int
    occupied: int


class ProcessorResponse(BaseModel):
    process: str
    input: LocationResponse
    output: LocationResponse


class TerminalResponse(BaseModel):
    name: str
    storage: LocationResponse


class RecipeCreatedResponse(BaseModel):
    index: int


class InventoryEntry(BaseModel):
    id: str
    display_name: str
    nbt: str | None = None
    count: int


class InventoryResponse(BaseModel):
    system: str
    items: list[InventoryEntry]


class RemovedProcessor(BaseModel):
    process: str
    input_id: str
    output_id: str


class ReindexResponse(BaseModel):
    refreshed: list[str]
    removed_storage: list[str]
    removed_processors: list[RemovedProcessor]
    removed_terminals: list[str]
    failures: dict[str, str]


class RestockingTriggerSchema(BaseModel):
    recipe_index: int
    process: str
    output_buffer: str
    item_id: str
    stock: int
    min_output_stock: int
    max_output_stock: int
    deficit: int


class RunProcessorsResponse(BaseModel):
    triggered: list[RestockingTriggerSchema]
