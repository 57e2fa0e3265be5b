from __future__ import annotations
from dataclasses import replace
from typing import Optional
import functools
import json
import logging
import time

generation_logger = logging.getLogger("fitlab.generation")


def emit_generation_log(request_id: str, step: str, model: str, latency_ms: float, status: str, error_code: Optional[str] = None, run_id: Optional[str] = None):
    record = {
        "request_id": request_id,
        "run_id": run_id,
        "step": step,
        "model": model,
        "latency_ms": latency_ms,
        "status": status,
    }
    if error_code is not None:
        record["error_code"] = error_code
    generation_logger.info(json.dumps(record))


def traced_generation(func):
    """Time a provider call and emit exactly one structured record for it.

    Wraps ``method(self, request, ...) -> GenerationResult``. The wrapped method
    must not raise; its result is returned with ``elapsed_ms`` filled in.
    """
    @functools.wraps(func)
    def wrapper(self, request, *args, **kwargs):
        t0 = time.perf_counter()
        result = func(self, request, *args, **kwargs)
        latency_ms = int(round((time.perf_counter() - t0) * 1000))
        result = replace(result, elapsed_ms=latency_ms)
        emit_generation_log(
            request_id=request.request_id,
            step=request.step,
            model=request.model,
            latency_ms=latency_ms,
            status=result.status.value,
            error_code=result.error.code if result.error else None,
            run_id=request.run_id,
        )
        return result
    return wrapper
