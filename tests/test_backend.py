"""Tests for remote synchronisation: process, process_all, save and result merging."""
import asyncio

import pytest

from formstate import AccessUpdate, ConfigurationError, Message, ProcessResult, Update, ValidationInfo


def test_process_result_from_camel_case_dict():
    result = ProcessResult.from_dict({
        "updates": [{"path": "/total", "value": 3}],
        "accessUpdates": [{"path": "/total", "readOnly": True}],
        "errorValidations": [{"id": "a", "messages": [{"path": "/customer", "message": "Bad"}]}],
        "generation": 2,
    })
    assert result.updates == [Update("/total", 3)]
    assert result.access_updates == [AccessUpdate("/total", read_only=True)]
    assert result.error_validations == [ValidationInfo("a", [Message("/customer", "Bad")])]
    assert result.warning_validations == []
    assert result.generation == 2


def test_process_result_defaults():
    result = ProcessResult.coerce({})
    assert result.updates == []
    assert result.access_updates == []
    assert result.generation is None


@pytest.mark.asyncio
async def test_result_of_other_generation_is_discarded(order_form, order):
    state = order_form.state(order, process_all=lambda node, live_only, generation: {})
    accepted = state.backend.run_process_result(ProcessResult(
        updates=[Update("/total", 99.0)],
        generation=state.generation + 1,
    ))
    assert not accepted
    assert order.total == 12.5

    assert state.backend.run_process_result(ProcessResult(
        updates=[Update("/total", 99.0)],
        generation=state.generation,
    ))
    assert order.total == 99.0
    assert state.field("total").raw == "99"
    state.dispose()


@pytest.mark.asyncio
async def test_process_updates_other_field(order_form, order):
    calls = []

    def process(node, path, live_only, generation):
        calls.append((path, live_only, generation))
        return {"updates": [{"path": "/total", "value": len(node.customer) * 1.0}]}

    state = order_form.state(order, process=process, debounce=0.01)
    await state.field("customer").set_raw("Grace")
    await asyncio.sleep(0.1)

    assert calls == [("/customer", True, 0)]
    assert order.total == 5.0
    assert state.field("total").raw == "5"
    assert state.is_finished()
    state.dispose()


@pytest.mark.asyncio
async def test_process_only_after_quiet_period(order_form, order):
    calls = []

    async def process(node, path, live_only, generation):
        calls.append(node.customer)
        return {}

    state = order_form.state(order, process=process, debounce=0.05)
    customer = state.field("customer")
    await customer.set_raw("G")
    await customer.set_raw("Gr")
    await customer.set_raw("Grace")
    assert not state.is_finished()
    await asyncio.sleep(0.15)
    assert calls == ["Grace"]
    state.dispose()


@pytest.mark.asyncio
async def test_update_for_locally_changed_path_is_ignored(order_form, order):
    def process(node, path, live_only, generation):
        return {"updates": [{"path": "/customer", "value": "Server"}]}

    state = order_form.state(order, process=process, debounce=0.01, delay=1.0)
    await state.field("customer").set_raw("Grace")
    await asyncio.sleep(0.1)
    assert order.customer == "Grace"
    assert state.field("customer").raw == "Grace"
    state.dispose()


@pytest.mark.asyncio
async def test_process_merges_access_and_validations(order_form, order):
    def process(node, path, live_only, generation):
        return {
            "accessUpdates": [{"path": "/total", "readOnly": True}],
            "errorValidations": [{"id": "credit", "messages": [{"path": "/customer", "message": "No credit"}]}],
            "warningValidations": [{"id": "size", "messages": [{"path": "/total", "message": "Big"}]}],
        }

    state = order_form.state(order, process=process, debounce=0.01)
    await state.field("customer").set_raw("Grace")
    await asyncio.sleep(0.1)
    assert state.field("total").read_only
    assert state.field("customer").error == "No credit"
    assert state.field("total").warning == "Big"
    state.dispose()


@pytest.mark.asyncio
async def test_process_error_is_logged_not_raised(order_form, order, caplog):
    def process(node, path, live_only, generation):
        raise RuntimeError("server down")

    state = order_form.state(order, process=process, debounce=0.01)
    await state.field("customer").set_raw("Grace")
    await asyncio.sleep(0.1)
    assert "Unexpected error during process for /customer: server down" in caplog.text
    assert order.customer == "Grace"
    assert state.field("customer").error is None
    state.dispose()


@pytest.mark.asyncio
async def test_stale_process_result_is_retried(order_form, order):
    calls = []

    def process(node, path, live_only, generation):
        calls.append(path)
        if len(calls) == 1:
            return {"generation": generation - 1}
        return {"generation": generation}

    state = order_form.state(order, process=process, debounce=0.01)
    await state.field("customer").set_raw("Grace")
    await asyncio.sleep(0.2)
    assert calls == ["/customer", "/customer"]
    state.dispose()


@pytest.mark.asyncio
async def test_structural_change_schedules_process(order_form, order):
    from conftest import Item

    calls = []
    state = order_form.state(order, process=lambda node, path, live_only, generation: calls.append(path) or {},
                             debounce=0.01)
    state.repeating_form("items").push(Item("fig", 1))
    await asyncio.sleep(0.1)
    assert calls == ["/items/3"]
    state.dispose()


@pytest.mark.asyncio
async def test_custom_apply_update(order_form, order):
    applied = []

    state = order_form.state(
        order,
        process_all=lambda node, live_only, generation: {"updates": [{"path": "/total", "value": 1.0}]},
        apply_update=lambda node, update: applied.append(update),
    )
    await state.process_all()
    assert applied == [Update("/total", 1.0)]
    assert order.total == 12.5
    state.dispose()


# ========== PROCESS ALL ==========

@pytest.mark.asyncio
async def test_process_all_and_revalidate(order_form, order):
    calls = []

    async def process_all(node, live_only, generation):
        calls.append(live_only)
        return {"errorValidations": [{"id": "a", "messages": [{"path": "/total", "message": "Check"}]}]}

    state = order_form.state(order, process_all=process_all)
    await state.process_all()
    assert calls == [True]
    assert state.field("total").error == "Check"

    await state.revalidate()
    assert calls == [True, False]
    state.dispose()


@pytest.mark.asyncio
async def test_process_all_without_result_clears_validations(order_form, order):
    state = order_form.state(order, process_all=lambda node, live_only, generation: None)
    state.set_external_validations([{"id": "a", "messages": [{"path": "/total", "message": "Old"}]}], "error")
    await state.process_all()
    assert state.field("total").error is None
    state.dispose()


# ========== SAVE ==========

@pytest.mark.asyncio
async def test_save_success(order_form, order):
    saved = []

    def save(node, generation):
        saved.append((node.customer, generation))
        return None

    state = order_form.state(order, save=save)
    state.set_external_validations([{"id": "a", "messages": [{"path": "/total", "message": "Old"}]}], "error")
    assert await state.save()
    assert saved == [("Ada", 0)]
    assert state.save_status == "rightAfter"
    assert state.field("total").error is None
    state.dispose()


@pytest.mark.asyncio
async def test_save_with_problems(order_form, order):
    async def save(node, generation):
        return {"errorValidations": [{"id": "db", "messages": [{"path": "/customer", "message": "Duplicate"}]}]}

    state = order_form.state(order, save=save)
    assert not await state.save()
    assert state.field("customer").error == "Duplicate"
    state.dispose()


@pytest.mark.asyncio
async def test_save_invalid_form_does_not_call_save(order_form, order):
    saved = []
    order.customer = ""
    state = order_form.state(order, save=lambda node, generation: saved.append(node))
    assert not await state.save()
    assert saved == []
    assert state.field("customer").error == "Required"
    state.dispose()


@pytest.mark.asyncio
async def test_save_waits_for_pending_process(order_form, order):
    events = []

    async def process(node, path, live_only, generation):
        events.append("process")
        return {}

    def save(node, generation):
        events.append("save")

    state = order_form.state(order, process=process, save=save, debounce=0.05)
    await state.field("customer").set_raw("Grace")
    assert await state.save()
    assert events[-1] == "save"
    assert state.is_finished()
    state.dispose()


@pytest.mark.asyncio
async def test_save_not_configured(order_form, order):
    state = order_form.state(order, process=lambda node, path, live_only, generation: {})
    with pytest.raises(ConfigurationError):
        await state.save()
    with pytest.raises(ConfigurationError):
        await state.process_all()
    state.dispose()


@pytest.mark.asyncio
async def test_replace_node_discards_old_results(order_form, order):
    from conftest import Order

    gate = asyncio.Event()
    calls = []

    async def process(node, path, live_only, generation):
        calls.append(generation)
        if len(calls) > 1:
            return {"generation": generation}
        await gate.wait()
        return {"generation": generation, "updates": [{"path": "/total", "value": 1.0}]}

    state = order_form.state(order, process=process, debounce=0.01)
    await state.field("customer").set_raw("Grace")
    await asyncio.sleep(0.05)

    other = Order(customer="Bob", total=7.0)
    state.replace_node(other)
    gate.set()
    await asyncio.sleep(0.1)
    assert other.total == 7.0
    assert calls == [0, 1]
    state.dispose()


@pytest.mark.asyncio
async def test_save_clears_errors_from_earlier_results(order_form, order):
    saved = []
    state = order_form.state(order, save=lambda node, generation: saved.append(generation))
    state.set_external_validations([{
        "id": "earlier",
        "messages": [
            {"path": "/customer", "message": "Unknown customer"},
            {"path": "/items", "message": "Too many items"},
        ],
    }], "error")
    assert not state.is_valid

    assert await state.save()
    assert saved == [0]
    assert state.field("customer").error is None
    assert state.repeating_form("items").error is None
    assert state.is_valid
    state.dispose()
