"""Tests for cancellation tokens and the trailing debouncer."""
import asyncio

import pytest

from pilot.scheduling import (
    CancellationTokenSource,
    Debouncer,
    Outcome,
    debounce,
    merge_tokens,
    run_cancellable,
    sleep_or_cancelled,
)


class TestCancellationToken:
    def test_cancel_runs_callbacks_once(self):
        source = CancellationTokenSource()
        fired = []
        source.token.on_cancellation_requested(lambda: fired.append(1))
        source.cancel()
        source.cancel()
        assert source.token.is_cancellation_requested
        assert fired == [1]

    def test_late_callback_runs_immediately(self):
        source = CancellationTokenSource()
        source.cancel()
        fired = []
        source.token.on_cancellation_requested(lambda: fired.append(1))
        assert fired == [1]

    def test_unregistered_callback_does_not_run(self):
        source = CancellationTokenSource()
        fired = []
        unregister = source.token.on_cancellation_requested(lambda: fired.append(1))
        unregister()
        source.cancel()
        assert fired == []

    def test_failing_callback_does_not_block_others(self):
        source = CancellationTokenSource()
        fired = []

        def boom():
            raise RuntimeError("boom")

        source.token.on_cancellation_requested(boom)
        source.token.on_cancellation_requested(lambda: fired.append(1))
        source.cancel()
        assert fired == [1]


class TestMergeTokens:
    def test_merged_token_follows_any_input(self):
        host = CancellationTokenSource()
        request = CancellationTokenSource()
        merged = merge_tokens(host.token, request.token)
        assert not merged.is_cancellation_requested
        request.cancel()
        assert merged.is_cancellation_requested

    def test_merged_token_never_reverts(self):
        host = CancellationTokenSource()
        merged = merge_tokens(host.token, CancellationTokenSource().token)
        host.cancel()
        merge_tokens(merged)
        assert merged.is_cancellation_requested

    def test_already_cancelled_input(self):
        source = CancellationTokenSource()
        source.cancel()
        assert merge_tokens(None, source.token).is_cancellation_requested

    def test_none_inputs_ignored(self):
        assert not merge_tokens(None, None).is_cancellation_requested


class TestRunCancellable:
    def test_returns_value_without_token(self):
        async def go():
            return await run_cancellable(asyncio.sleep(0, result=7), None)

        assert asyncio.run(go()) == 7

    def test_cancellation_aborts_inner_task(self):
        async def go():
            source = CancellationTokenSource()
            finished = []

            async def slow():
                await asyncio.sleep(10)
                finished.append(1)
                return "late"

            asyncio.get_running_loop().call_later(0.05, source.cancel)
            result = await asyncio.wait_for(run_cancellable(slow(), source.token), timeout=2)
            return result, finished

        result, finished = asyncio.run(go())
        assert result is None
        assert finished == []

    def test_pre_cancelled_token_skips_work(self):
        async def go():
            source = CancellationTokenSource()
            source.cancel()
            calls = []

            async def work():
                calls.append(1)

            await run_cancellable(work(), source.token)
            return calls

        assert asyncio.run(go()) == []

    def test_errors_propagate(self):
        async def go():
            async def broken():
                raise ValueError("nope")

            await run_cancellable(broken(), CancellationTokenSource().token)

        with pytest.raises(ValueError):
            asyncio.run(go())

    def test_sleep_or_cancelled(self):
        async def go():
            source = CancellationTokenSource()
            asyncio.get_running_loop().call_later(0.02, source.cancel)
            interrupted = await sleep_or_cancelled(5, source.token)
            completed = await sleep_or_cancelled(0, None)
            return interrupted, completed

        assert asyncio.run(go()) == (False, True)


class TestDebouncer:
    def test_only_last_call_of_a_burst_runs(self):
        async def go():
            ran = []

            async def op(value, cancellation):
                ran.append(value)
                return value * 10

            debouncer = Debouncer(op, delay=0.2)
            futures = [debouncer("t0")]
            await asyncio.sleep(0.1)
            futures.append(debouncer("t100"))
            await asyncio.sleep(0.05)
            futures.append(debouncer("t150"))
            results = await asyncio.gather(*futures)
            return ran, results

        ran, results = asyncio.run(go())
        assert ran == ["t150"]
        assert [r.outcome for r in results] == [Outcome.SUPERSEDED, Outcome.SUPERSEDED, Outcome.OK]
        assert results[2].value == "t150" * 10

    def test_spaced_calls_all_run(self):
        async def go():
            ran = []

            async def op(value, cancellation):
                ran.append(value)

            debouncer = Debouncer(op, delay=0.01)
            first = await debouncer(1)
            second = await debouncer(2)
            return ran, first, second

        ran, first, second = asyncio.run(go())
        assert ran == [1, 2]
        assert first.ok and second.ok

    def test_failure_resolves_as_failed(self):
        async def go():
            async def op(cancellation):
                raise RuntimeError("index broke")

            return await Debouncer(op, delay=0)()

        result = asyncio.run(go())
        assert result.outcome is Outcome.FAILED
        assert str(result.error) == "index broke"

    def test_cancel_pending_call(self):
        async def go():
            ran = []

            async def op(cancellation):
                ran.append(1)

            debouncer = Debouncer(op, delay=0.5)
            future = debouncer()
            assert debouncer.pending
            debouncer.cancel()
            result = await future
            await asyncio.sleep(0.01)
            return ran, result, debouncer.pending

        ran, result, pending = asyncio.run(go())
        assert ran == []
        assert result.outcome is Outcome.CANCELLED
        assert not pending

    def test_running_call_sees_its_token_cancelled(self):
        async def go():
            started = asyncio.Event()

            async def op(cancellation):
                started.set()
                while not cancellation.is_cancellation_requested:
                    await asyncio.sleep(0.01)
                return "stale"

            debouncer = Debouncer(op, delay=0)
            future = debouncer()
            await started.wait()
            debouncer.cancel()
            await debouncer.drain()
            return await future

        assert asyncio.run(go()).outcome is Outcome.CANCELLED

    def test_on_superseded_hook(self):
        async def go():
            notified = []

            async def op(cancellation):
                return None

            debouncer = Debouncer(op, delay=0.05)
            debouncer(on_superseded=lambda: notified.append("first"))
            await debouncer()
            return notified

        assert asyncio.run(go()) == ["first"]

    def test_decorator(self):
        @debounce(0)
        async def double(x, cancellation):
            return x * 2

        async def go():
            return await double(21)

        assert isinstance(double, Debouncer)
        assert asyncio.run(go()).value == 42
