"""Validation debouncer — keyed trailing-edge debounce plus a whole-step result cache.

One ValidationDebouncer is owned by each wizard session. Field results are
cached per (step_index, field_name); whole-step results per
(step_index, fingerprint of the step data) for a short freshness window.
Timers are asyncio TimerHandles scheduled with loop.call_later and belong to
the event loop thread; with no running loop, field validation is immediate.
"""

import asyncio
import hashlib
import json
import time
from typing import Any, Callable, Mapping, Optional

import structlog

from intake.config import get_settings
from intake.validators.models import FieldValidationResult, ValidationResult
from intake.wizard.models import CacheEntry

logger = structlog.get_logger()

CacheKey = tuple[int, str]
FieldValidator = Callable[[str, Any, int], FieldValidationResult]
ResultCallback = Callable[[FieldValidationResult], None]


def fingerprint(data: Optional[Mapping]) -> str:
    """Stable content hash of a step snapshot (key order ignored)."""
    serialised = json.dumps(data or {}, sort_keys=True, default=str)
    return hashlib.md5(serialised.encode("utf-8")).hexdigest()


class ValidationDebouncer:
    """Debounces field validation and caches whole-step results.

    Invariants:
        - At most one pending timer per (step_index, field_name)
        - Callers never wait: the last known result (or a neutral one) is returned
        - A timer firing after clear_cache()/close() does nothing
    """

    def __init__(
        self,
        validate_field: FieldValidator,
        delay: Optional[float] = None,
        step_cache_seconds: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        settings = get_settings()
        self.validate_field = validate_field
        self.delay = delay if delay is not None else settings.FIELD_DEBOUNCE_SECONDS
        self.step_cache_seconds = (
            step_cache_seconds if step_cache_seconds is not None else settings.STEP_CACHE_SECONDS
        )
        self._clock = clock or time.monotonic
        self._timers: dict[CacheKey, asyncio.TimerHandle] = {}
        self._results: dict[CacheKey, CacheEntry] = {}
        self._step_cache: dict[CacheKey, CacheEntry] = {}
        self._generation = 0
        self._closed = False

    # ── Field validation ──

    def debounced_validate(
        self,
        field_name: str,
        value: Any,
        step_index: int,
        on_result: Optional[ResultCallback] = None,
    ) -> FieldValidationResult:
        """Schedule a validation and return the best result known right now.

        Each call for the same key replaces the pending timer, so only the
        last value in a burst is ever evaluated. Without a running event loop
        there is nothing to schedule on, so the value is validated immediately.
        """
        key = (step_index, field_name)
        self._cancel(key)

        if not self._closed:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("debounce_without_event_loop", step=step_index, field=field_name)
                result = self._evaluate(key, value)
                if on_result is not None:
                    on_result(result)
                return result
            self._timers[key] = loop.call_later(
                self.delay, self._fire, key, value, on_result, self._generation
            )

        return self.cached_result(field_name, step_index)

    def get_immediate_validation(self, field_name: str, value: Any, step_index: int) -> FieldValidationResult:
        """Validate now, bypassing the debounce (blur, submit)."""
        key = (step_index, field_name)
        # A pending timer holds an older value
        self._cancel(key)
        return self._evaluate(key, value)

    def cached_result(self, field_name: str, step_index: int) -> FieldValidationResult:
        entry = self._results.get((step_index, field_name))
        return entry.result if entry is not None else FieldValidationResult.neutral()

    def _fire(self, key: CacheKey, value: Any, on_result: Optional[ResultCallback], generation: int) -> None:
        if self._closed or generation != self._generation:
            return
        self._timers.pop(key, None)
        result = self._evaluate(key, value)
        if on_result is not None:
            on_result(result)

    def _evaluate(self, key: CacheKey, value: Any) -> FieldValidationResult:
        step_index, field_name = key
        result = self.validate_field(field_name, value, step_index)
        self._results[key] = CacheEntry(key=key, result=result, timestamp=self._clock())
        logger.debug("field_validated", step=step_index, field=field_name, state=result.state)
        return result

    def _cancel(self, key: CacheKey) -> None:
        handle = self._timers.pop(key, None)
        if handle is not None:
            handle.cancel()

    @property
    def pending_keys(self) -> list[CacheKey]:
        return sorted(self._timers)

    # ── Whole-step cache ──

    def cached_step_validation(
        self,
        step_index: int,
        data: Optional[Mapping],
        evaluate: Callable[[], ValidationResult],
        force: bool = False,
    ) -> ValidationResult:
        """Serve a fresh cached step result or run `evaluate` and cache it.

        Args:
            step_index: Step being validated
            data: Step snapshot; identical content hits the cache
            evaluate: Zero-argument callable producing the result
            force: Always evaluate (used before final submission)
        """
        key = (step_index, fingerprint(data))
        now = self._clock()

        entry = self._step_cache.get(key)
        if not force and entry is not None and now - entry.timestamp < self.step_cache_seconds:
            logger.debug("step_cache_hit", step=step_index)
            return entry.result

        result = evaluate()
        self._prune_step_cache(now)
        self._step_cache[key] = CacheEntry(key=key, result=result, timestamp=now)
        return result

    def _prune_step_cache(self, now: float) -> None:
        stale = [k for k, e in self._step_cache.items() if now - e.timestamp >= self.step_cache_seconds]
        for k in stale:
            del self._step_cache[k]

    # ── Clearing ──

    def clear_cache(self, field_name: Optional[str] = None, step_index: Optional[int] = None) -> None:
        """Drop cached results and cancel their pending timers.

        Both given: exactly that entry. Neither: everything, step cache included.
        Only step_index: every field of that step and its cached step results.
        Only field_name: that field on every step.
        """
        if field_name is None and step_index is None:
            for handle in self._timers.values():
                handle.cancel()
            self._timers.clear()
            self._results.clear()
            self._step_cache.clear()
            self._generation += 1
            logger.debug("validation_cache_cleared", scope="all")
            return

        if field_name is not None and step_index is not None:
            keys = [(step_index, field_name)]
        elif step_index is not None:
            keys = [k for k in {*self._timers, *self._results} if k[0] == step_index]
            for k in [k for k in self._step_cache if k[0] == step_index]:
                del self._step_cache[k]
        else:
            keys = [k for k in {*self._timers, *self._results} if k[1] == field_name]

        for key in keys:
            self._cancel(key)
            self._results.pop(key, None)

        logger.debug("validation_cache_cleared", field=field_name, step=step_index, entries=len(keys))

    def close(self) -> None:
        """Cancel every timer; later calls never schedule new ones."""
        self.clear_cache()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed
