"""Tests for telemetry primitives — Span, @traced, trace_span."""

from __future__ import annotations

import time
from typing import Any

import anyio
import pytest

from halopub.services.result import ServiceResult
from halopub.services.telemetry import (
    Span,
    disable_telemetry,
    enable_telemetry,
    get_current_span,
    trace_span,
    traced,
)


class TestSpan:
    def test_duration_before_end_is_zero(self) -> None:
        assert Span(name="s").duration_ms == 0.0

    def test_duration_after_end(self) -> None:
        span = Span(name="s")
        time.sleep(0.001)
        span.end()
        assert span.duration_ms > 0

    def test_to_dict_minimal(self) -> None:
        span = Span(name="s")
        span.end()
        assert set(span.to_dict()) == {"name", "duration_ms"}

    def test_to_dict_with_children_and_annotations(self) -> None:
        parent = Span(name="parent")
        child = Span(name="child", parent=parent)
        parent.children.append(child)
        parent.annotate("site", "https://halo.test")
        data = parent.to_dict()
        assert data["annotations"] == {"site": "https://halo.test"}
        assert [c["name"] for c in data["children"]] == ["child"]


class TestTraceSpan:
    def test_disabled_yields_none(self) -> None:
        with trace_span("x") as span:
            assert span is None

    def test_no_root_yields_none(self) -> None:
        enable_telemetry()
        with trace_span("x") as span:
            assert span is None

    def test_current_span_restored(self) -> None:
        enable_telemetry()

        @traced
        def op() -> ServiceResult:
            root = get_current_span()
            with trace_span("inner") as inner:
                assert get_current_span() is inner
            assert get_current_span() is root
            return ServiceResult(ok=True, op="op")

        op()
        assert get_current_span() is None


class TestTracedSync:
    def test_noop_when_disabled(self) -> None:
        @traced
        def op() -> ServiceResult:
            return ServiceResult(ok=True, op="op")

        assert op().meta is None

    def test_injects_meta_when_enabled(self) -> None:
        enable_telemetry()

        @traced
        def op() -> ServiceResult:
            with trace_span("step") as span:
                assert span is not None
                span.annotate("count", 2)
            return ServiceResult(ok=True, op="op", meta={"existing": 1})

        result = op()
        assert result.meta is not None
        assert result.meta["existing"] == 1
        telemetry = result.meta["telemetry"]
        assert telemetry["name"].endswith("op")
        assert telemetry["children"] == [
            {"name": "step", "duration_ms": telemetry["children"][0]["duration_ms"],
             "annotations": {"count": 2}}
        ]

    def test_error_results_traced(self) -> None:
        enable_telemetry()

        @traced
        def op() -> ServiceResult:
            return ServiceResult.failure("op", "BOOM", "failed")

        result = op()
        assert result.meta is not None
        assert "telemetry" in result.meta

    def test_non_result_passthrough(self) -> None:
        enable_telemetry()

        @traced
        def op() -> int:
            return 42

        assert op() == 42

    def test_exception_propagates(self) -> None:
        enable_telemetry()

        @traced
        def op() -> ServiceResult:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            op()
        assert get_current_span() is None


class TestTracedAsync:
    def test_wraps_coroutine(self) -> None:
        enable_telemetry()

        @traced
        async def op() -> ServiceResult:
            with trace_span("before_sleep"):
                await anyio.sleep(0)
            with trace_span("after_sleep"):
                pass
            return ServiceResult(ok=True, op="async_op")

        result = anyio.run(op)
        assert result.meta is not None
        children = [c["name"] for c in result.meta["telemetry"]["children"]]
        assert children == ["before_sleep", "after_sleep"]

    def test_disabled_async(self) -> None:
        disable_telemetry()

        @traced
        async def op() -> ServiceResult:
            return ServiceResult(ok=True, op="async_op")

        assert anyio.run(op).meta is None

    def test_async_exception_propagates(self) -> None:
        enable_telemetry()

        @traced
        async def op() -> Any:
            raise ValueError("nope")

        with pytest.raises(ValueError, match="nope"):
            anyio.run(op)

    def test_preserves_metadata(self) -> None:
        async def original() -> None:
            """Docstring kept."""

        wrapped = traced(original)
        assert wrapped.__name__ == "original"
        assert wrapped.__doc__ == "Docstring kept."
