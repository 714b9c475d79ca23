"""
Lenient parsing of generative-call responses and the tagged stage result.

A pass never trusts the model's output: it extracts the first balanced
``{...}`` object from the response text, validates it, and on any failure
(including a timeout) substitutes its locally computed fallback. Failed
calls are not retried.
"""
import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from estimator.services.errors import ResponseParseError

logger = logging.getLogger("estimator-parser")

_FENCE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)


def _first_balanced_object(text: str) -> Optional[str]:
    """First ``{...}`` span whose braces balance outside string literals."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def extract_json_object(text: Optional[str]) -> dict:
    """
    Parse the first balanced JSON object embedded in ``text``.

    Code fences are stripped first. Raises ResponseParseError when the text
    is empty, holds no balanced object, or the object is not valid JSON.
    """
    if not text or not text.strip():
        raise ResponseParseError("empty response")

    candidates = [m.group(1) for m in _FENCE.finditer(text)] + [text]
    last_error = "no JSON object found"
    for candidate in candidates:
        blob = _first_balanced_object(candidate)
        if blob is None:
            continue
        try:
            parsed = json.loads(blob)
        except json.JSONDecodeError as e:
            last_error = f"invalid JSON ({e.msg} at {e.pos})"
            continue
        if isinstance(parsed, dict):
            return parsed
    raise ResponseParseError(last_error, excerpt=text)


@dataclass(frozen=True)
class StageResult:
    """Outcome of one pass: ``ok`` with parsed data, or ``fallback`` with the local result."""
    status: str                         # ok | fallback
    data: Any = None
    reason: str = ""
    meta: dict = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any, **meta) -> "StageResult":
        return cls(status="ok", data=data, meta=meta)

    @classmethod
    def fallback(cls, data: Any, reason: str, **meta) -> "StageResult":
        return cls(status="fallback", data=data, reason=reason, meta=meta)

    @property
    def is_fallback(self) -> bool:
        return self.status == "fallback"

    def to_dict(self) -> dict:
        out = {"status": self.status}
        if self.reason:
            out["reason"] = self.reason
        return out


async def call_stage(
    generator,
    prompt: str,
    timeout: float,
    parse: Callable[[dict], Any],
    fallback: Callable[[], Any],
    system: str = "",
    stage: str = "",
) -> StageResult:
    """
    Run one bounded generative call and parse it.

    ``parse`` turns the extracted object into stage data and may raise
    ResponseParseError (or a pydantic ValidationError, which is a
    ValueError) to reject it. ``fallback`` is only called on the degraded
    path. No generator at all is treated as an immediate fallback.
    """
    if generator is None:
        return StageResult.fallback(fallback(), "no text generator configured")

    try:
        raw = await asyncio.wait_for(generator.generate(prompt, system=system), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{stage or 'stage'}: generative call timed out after {timeout:.0f}s, using fallback")
        return StageResult.fallback(fallback(), f"timeout after {timeout:.0f}s")
    except Exception as e:
        logger.warning(f"{stage or 'stage'}: generative call failed ({type(e).__name__}: {e}), using fallback")
        return StageResult.fallback(fallback(), f"call failed: {type(e).__name__}")

    try:
        data = parse(extract_json_object(raw))
    except ResponseParseError as e:
        logger.warning(f"{stage or 'stage'}: {e}, using fallback")
        return StageResult.fallback(fallback(), e.reason)
    except ValueError as e:
        logger.warning(f"{stage or 'stage'}: response failed validation ({e.__class__.__name__}), using fallback")
        return StageResult.fallback(fallback(), "response failed validation")

    return StageResult.ok(data)
