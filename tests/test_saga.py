import pytest

from services.order_service.saga import SagaOrchestrator


async def test_compensations_run_in_reverse_for_completed_steps():
    calls = []

    def recorder(label):
        async def _record(ctx):
            calls.append(label)
        return _record

    async def explode(ctx):
        raise RuntimeError("boom")

    saga = (
        SagaOrchestrator()
        .add_step("first", recorder("first"), recorder("undo_first"))
        .add_step("second", recorder("second"), recorder("undo_second"))
        .add_step("third", explode, recorder("undo_third"))
    )
    ctx = {}

    with pytest.raises(RuntimeError, match="boom"):
        await saga.execute(ctx)

    assert calls == ["first", "second", "undo_second", "undo_first"]
    assert ctx["failed_step"] == "third"


async def test_failing_compensation_does_not_stop_the_others():
    calls = []

    async def noop(ctx):
        pass

    async def broken_undo(ctx):
        raise ValueError("cannot undo")

    async def undo_first(ctx):
        calls.append("undo_first")

    async def explode(ctx):
        raise RuntimeError("boom")

    saga = (
        SagaOrchestrator()
        .add_step("first", noop, undo_first)
        .add_step("second", noop, broken_undo)
        .add_step("third", explode)
    )

    with pytest.raises(RuntimeError):
        await saga.execute({})

    assert calls == ["undo_first"]


async def test_successful_saga_returns_context():
    async def put(ctx):
        ctx["value"] = 42

    ctx = await SagaOrchestrator().add_step("put", put).execute({})

    assert ctx == {"value": 42}
