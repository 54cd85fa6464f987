"""LangChain callbacks used while the voice agent handles one user turn."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from langchain_core.callbacks import BaseCallbackHandler
from langchain_core.outputs import LLMResult

logger = logging.getLogger("voice_invoice.agent")


def _first_generation_text(response: LLMResult) -> Any:
    for generations in response.generations:
        for generation in generations:
            message = getattr(generation, "message", None)
            return generation.text or getattr(message, "content", None) or generation
    return None


class AgentLoggingCallbackHandler(BaseCallbackHandler):
    """Write model replies and tool activity of an agent run to the log."""

    def on_llm_end(self, response: LLMResult, **kwargs: Any) -> None:
        text = _first_generation_text(response)
        if text is not None:
            logger.info("Model replied: %s", text)

    def on_llm_error(self, error: BaseException, **kwargs: Any) -> None:
        logger.error("Model call failed: %s", error)

    def on_tool_start(
        self,
        serialized: Dict[str, Any],
        input_str: str,
        *,
        run_id: Optional[UUID] = None,
        parent_run_id: Optional[UUID] = None,
        **kwargs: Any,
    ) -> None:
        name = (serialized or {}).get("name")
        logger.info("Calling %s [%s] with %s", name, run_id, input_str)

    def on_tool_end(
        self,
        output: Any,
        *,
        run_id: Optional[UUID] = None,
        parent_run_id: Optional[UUID] = None,
        **kwargs: Any,
    ) -> None:
        logger.info("Tool run %s returned: %s", run_id, getattr(output, "content", output))

    def on_tool_error(
        self,
        error: BaseException,
        *,
        run_id: Optional[UUID] = None,
        parent_run_id: Optional[UUID] = None,
        **kwargs: Any,
    ) -> None:
        logger.warning("Tool run %s failed: %s", run_id, error)


class AgentRunCollector(BaseCallbackHandler):
    """Capture every tool call made during one agent run, in order."""

    def __init__(self) -> None:
        self.tool_calls: List[Dict[str, Any]] = []
        self._pending: Dict[UUID, Dict[str, Any]] = {}

    def on_tool_start(
        self,
        serialized: Dict[str, Any],
        input_str: str,
        *,
        run_id: UUID,
        parent_run_id: Optional[UUID] = None,
        inputs: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> None:
        call = {
            "name": serialized.get("name") if isinstance(serialized, dict) else None,
            "input": inputs if inputs is not None else input_str,
            "output": None,
            "error": None,
        }
        self._pending[run_id] = call
        self.tool_calls.append(call)

    def on_tool_end(
        self,
        output: Any,
        *,
        run_id: UUID,
        parent_run_id: Optional[UUID] = None,
        **kwargs: Any,
    ) -> None:
        call = self._pending.pop(run_id, None)
        if call is not None:
            call["output"] = getattr(output, "content", output)

    def on_tool_error(
        self,
        error: BaseException,
        *,
        run_id: UUID,
        parent_run_id: Optional[UUID] = None,
        **kwargs: Any,
    ) -> None:
        call = self._pending.pop(run_id, None)
        if call is not None:
            call["error"] = str(error)
