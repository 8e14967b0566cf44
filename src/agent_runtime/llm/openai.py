"""
OpenAI GPT LLM provider (also works with OpenAI-compatible APIs).
"""

import base64
import json
from typing import Any, AsyncIterator

import openai
import structlog

from ..events import Content, FunctionCall
from .base import BaseLLM, LLMRequest, LLMResponse, ToolDefinition

logger = structlog.get_logger()


def _response_payload(response: Any) -> str:
    if isinstance(response, str):
        return response
    return json.dumps(response, default=str)


class OpenAILLM(BaseLLM):
    """OpenAI GPT LLM provider."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ):
        super().__init__(api_key, model, base_url, max_tokens, temperature)
        self.client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    def _convert_contents(self, contents: list[Content]) -> list[dict[str, Any]]:
        """Convert Contents to OpenAI chat messages."""
        converted: list[dict[str, Any]] = []

        for content in contents:
            if content.role == "tool":
                for resp in content.function_responses:
                    converted.append({
                        "role": "tool",
                        "tool_call_id": resp.id or resp.name,
                        "content": _response_payload(resp.response),
                    })
            elif content.role == "model":
                message: dict[str, Any] = {
                    "role": "assistant",
                    "content": content.text or None,
                }
                calls = content.function_calls
                if calls:
                    message["tool_calls"] = [
                        {
                            "id": call.id or call.name,
                            "type": "function",
                            "function": {
                                "name": call.name,
                                "arguments": json.dumps(call.args),
                            },
                        }
                        for call in calls
                    ]
                converted.append(message)
            elif content.role == "user":
                images = [p for p in content.parts if p.inline_data is not None]
                if images:
                    blocks: list[dict[str, Any]] = []
                    if content.text:
                        blocks.append({"type": "text", "text": content.text})
                    for part in images:
                        encoded = base64.b64encode(part.inline_data).decode("ascii")
                        blocks.append({
                            "type": "image_url",
                            "image_url": {"url": f"data:{part.mime_type};base64,{encoded}"},
                        })
                    converted.append({"role": "user", "content": blocks})
                else:
                    converted.append({"role": "user", "content": content.text})
            elif content.role == "system":
                converted.append({"role": "system", "content": content.text})

        return converted

    def _convert_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        """Convert ToolDefinitions to OpenAI format."""
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters,
                },
            }
            for tool in tools
        ]

    def _build_kwargs(self, request: LLMRequest) -> dict[str, Any]:
        messages = self._convert_contents(request.contents)

        if request.system_instruction:
            messages.insert(0, {"role": "system", "content": request.system_instruction})

        max_tokens, temperature = self._sampling(request)
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": messages,
        }

        if request.config is not None:
            if request.config.top_p is not None:
                kwargs["top_p"] = request.config.top_p
            if request.config.stop:
                kwargs["stop"] = request.config.stop

        if request.tools:
            kwargs["tools"] = self._convert_tools(request.tools)
            if request.tool_choice:
                kwargs["tool_choice"] = request.tool_choice

        return kwargs

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate a response from GPT."""
        kwargs = self._build_kwargs(request)

        try:
            response = await self.client.chat.completions.create(**kwargs)

            choice = response.choices[0]
            message = choice.message

            function_calls = []
            if message.tool_calls:
                for tc in message.tool_calls:
                    function_calls.append(FunctionCall(
                        id=tc.id,
                        name=tc.function.name,
                        args=json.loads(tc.function.arguments) if tc.function.arguments else {},
                    ))

            return LLMResponse(
                text=message.content or "",
                reasoning=getattr(message, "reasoning_content", None) or "",
                function_calls=function_calls,
                finish_reason=choice.finish_reason,
                input_tokens=response.usage.prompt_tokens if response.usage else 0,
                output_tokens=response.usage.completion_tokens if response.usage else 0,
                model=response.model,
                raw_response=response,
            )

        except openai.APIError as e:
            logger.error("OpenAI API error", error=str(e))
            raise

    async def stream(self, request: LLMRequest) -> AsyncIterator[LLMResponse]:
        """Stream a response from GPT.

        Text arrives fragment by fragment. Tool calls arrive as indexed
        deltas and are emitted whole in the closing fragment.
        """
        kwargs = self._build_kwargs(request)
        kwargs["stream"] = True

        pending_calls: dict[int, dict[str, str]] = {}
        finish_reason = None

        try:
            stream = await self.client.chat.completions.create(**kwargs)

            async for chunk in stream:  # type: ignore
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta

                reasoning = getattr(delta, "reasoning_content", None)
                if reasoning:
                    yield LLMResponse(reasoning=reasoning, model=chunk.model)
                if delta.content:
                    yield LLMResponse(text=delta.content, model=chunk.model)

                for tc in delta.tool_calls or []:
                    entry = pending_calls.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
                    if tc.id:
                        entry["id"] = tc.id
                    if tc.function and tc.function.name:
                        entry["name"] += tc.function.name
                    if tc.function and tc.function.arguments:
                        entry["arguments"] += tc.function.arguments

                if choice.finish_reason:
                    finish_reason = choice.finish_reason

        except openai.APIError as e:
            logger.error("OpenAI streaming error", error=str(e))
            raise

        function_calls = [
            FunctionCall(
                id=entry["id"] or None,
                name=entry["name"],
                args=json.loads(entry["arguments"]) if entry["arguments"] else {},
            )
            for _, entry in sorted(pending_calls.items())
        ]
        yield LLMResponse(function_calls=function_calls, finish_reason=finish_reason)
