"""BDD tests for reindexing a storage system."""

import asyncio

from pytest_bdd import given, parsers, scenarios, then, when
from storage.controller import expressions
from storage.model.items import ItemStack

scenarios("features/reindex.feature")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.parse('the controller no longer reports "{location_id}"'))
def _(connected, location_id):
    del connected.peripherals[location_id]


@given(parsers.parse('the controller answers "{reply}" when asked about "{location_id}"'))
def _(connected, reply, location_id):
    connected.overrides[expressions.is_present(location_id)] = reply


@given(parsers.parse('slot {slot:d} of "{location_id}" now holds {count:d} cobblestone'))
def _(connected, cobblestone, slot, location_id, count):
    connected.peripherals[location_id][slot - 1] = ItemStack(item=cobblestone, count=count)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the system is reindexed", target_fixture="report")
def _(reconciler):
    return asyncio.run(reconciler.reindex())


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("nothing is reported removed")
def _(report):
    assert not report.removed_anything


@then(parsers.parse('"{location_id}" is reported removed'))
def _(report, location_id):
    assert report.removed_storage == [location_id]


@then(parsers.parse('"{location_id}" is no longer a registered location'))
def _(system, location_id):
    assert not system.has_location(location_id)


@then(parsers.parse('"{location_id}" is reported as a failure'))
def _(report, location_id):
    assert location_id in report.failures


@then(parsers.parse('"{location_id}" holds {count:d} cobblestone'))
def _(system, location_id, count):
    assert system.find_location(location_id).count_of("minecraft:cobblestone") == count
