"""Shared BDD fixtures and step definitions for the Storage domain."""

import asyncio

import pytest
from pytest_bdd import given, parsers, then
from storage.model.items import ItemStack


@pytest.fixture()
def reconciler(registry):
    return registry.reconciler("main")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a storage system with a connected controller", target_fixture="system")
def system_with_controller(handle, connected):
    return handle.system


@given(parsers.parse('the controller reports peripherals "{ids}"'))
def controller_reports(connected, cobblestone, ids):
    for location_id in ids.split(", "):
        connected.peripherals[location_id] = [None, ItemStack(item=cobblestone, count=1)]


@given(parsers.parse('storage "{location_id}" is registered'))
def storage_registered(reconciler, location_id):
    asyncio.run(reconciler.register_storage(location_id))


@given(parsers.parse('a "{process}" processor from "{input_id}" to "{output_id}" is registered'))
def processor_registered(reconciler, process, input_id, output_id):
    asyncio.run(reconciler.register_processor(process, input_id, output_id))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.parse('the storage is "{ids}"'))
def storage_is(system, ids):
    assert [location.id for location in system.storage] == ids.split(", ")


@then(parsers.re(r"(?P<count>\d+) processors? (?:is|are) registered"), converters={"count": int})
def processors_registered(system, count):
    assert len(system.processors) == count
