from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Optional

from openai import OpenAI

from config import Settings, get_settings


logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "AI insights are currently unavailable."


class InsightsUnavailable(RuntimeError):
    pass


@dataclass(frozen=True)
class AgentTool:
    name: str
    description: str
    func: Callable[[], str]

    def schema(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {"type": "object", "properties": {}},
            },
        }


class LLMClient:
    """Thin wrapper over the OpenAI chat completions API.

    `complete` is a single prompt-in, text-out call. `run_agent` drives a
    function-calling loop: while the model requests tool calls, the matching
    callbacks run and their output is appended to the transcript.
    """

    def __init__(self, settings: Settings, client: Optional[Any] = None) -> None:
        self.settings = settings
        self._client = client or OpenAI(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            timeout=settings.llm_timeout_secs,
            max_retries=0,
        )

    def complete(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self.settings.insight_model,
            messages=[{"role": "user", "content": prompt}],
        )
        content = response.choices[0].message.content
        if content is None:
            raise RuntimeError("Unexpected LLM response: no text content")
        return content

    def run_agent(
        self, messages: list[dict[str, Any]], tools: list[AgentTool]
    ) -> str:
        by_name = {tool.name: tool for tool in tools}
        transcript = list(messages)
        extra: dict[str, Any] = {}
        if tools:
            extra["tools"] = [tool.schema() for tool in tools]

        for step in range(self.settings.agent_max_steps):
            response = self._client.chat.completions.create(
                model=self.settings.chat_model,
                temperature=self.settings.chat_temperature,
                messages=transcript,
                **extra,
            )
            message = response.choices[0].message
            if not message.tool_calls:
                return message.content or ""

            transcript.append(
                {
                    "role": "assistant",
                    "content": message.content,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {
                                "name": call.function.name,
                                "arguments": call.function.arguments,
                            },
                        }
                        for call in message.tool_calls
                    ],
                }
            )
            for call in message.tool_calls:
                tool = by_name.get(call.function.name)
                if tool is None:
                    output = json.dumps(
                        {"error": f"Unknown tool: {call.function.name}"}
                    )
                else:
                    output = tool.func()
                logger.info(f"agent_tool: step={step} name={call.function.name}")
                transcript.append(
                    {"role": "tool", "tool_call_id": call.id, "content": output}
                )

        raise RuntimeError(
            f"Agent did not produce an answer within {self.settings.agent_max_steps} steps"
        )


def require_insights_configuration(settings: Settings) -> None:
    if settings.insights_enabled and not settings.llm_api_key:
        raise InsightsUnavailable(
            "OPENAI_API_KEY is not set and no secret file was found; "
            "set PENNYWISE_INSIGHTS_ENABLED=false to run without insights."
        )


@lru_cache(maxsize=1)
def get_llm_client() -> Optional[LLMClient]:
    settings = get_settings()
    if not settings.insights_enabled or not settings.llm_api_key:
        return None
    return LLMClient(settings)
