"""
Anthropic Claude LLM provider.
"""

import base64
import json
from typing import Any, AsyncIterator

import anthropic
import structlog

from ..events import Content, FunctionCall
from .base import BaseLLM, LLMRequest, LLMResponse, ToolDefinition

logger = structlog.get_logger()


class AnthropicLLM(BaseLLM):
    """Anthropic Claude LLM provider."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        base_url: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ):
        super().__init__(api_key, model, base_url, max_tokens, temperature)
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"

    def _content_blocks(self, content: Content) -> list[dict[str, Any]]:
        blocks: list[dict[str, Any]] = []
        for part in content.parts:
            if part.text is not None:
                blocks.append({"type": "text", "text": part.text})
            elif part.inline_data is not None:
                blocks.append({
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": part.mime_type,
                        "data": base64.b64encode(part.inline_data).decode("ascii"),
                    },
                })
            elif part.function_call is not None:
                call = part.function_call
                blocks.append({
                    "type": "tool_use",
                    "id": call.id or call.name,
                    "name": call.name,
                    "input": call.args,
                })
            elif part.function_response is not None:
                resp = part.function_response
                payload = resp.response if isinstance(resp.response, str) else json.dumps(resp.response, default=str)
                block: dict[str, Any] = {
                    "type": "tool_result",
                    "tool_use_id": resp.id or resp.name,
                    "content": payload,
                }
                if resp.error:
                    block["is_error"] = True
                blocks.append(block)
        return blocks

    def _convert_contents(self, contents: list[Content]) -> list[dict[str, Any]]:
        """Convert Contents to Anthropic messages.

        Tool results travel as user messages; consecutive messages with the
        same role are merged because the API requires alternation.
        """
        converted: list[dict[str, Any]] = []

        for content in contents:
            if content.role == "system":
                continue
            role = "assistant" if content.role == "model" else "user"
            blocks = self._content_blocks(content)
            if not blocks:
                continue

            if converted and converted[-1]["role"] == role:
                converted[-1]["content"].extend(blocks)
            else:
                converted.append({"role": role, "content": blocks})

        return converted

    def _convert_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        """Convert ToolDefinitions to Anthropic format."""
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.parameters,
            }
            for tool in tools
        ]

    def _build_kwargs(self, request: LLMRequest) -> dict[str, Any]:
        max_tokens, temperature = self._sampling(request)
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": self._convert_contents(request.contents),
        }

        if request.system_instruction:
            kwargs["system"] = request.system_instruction

        if request.config is not None:
            if request.config.top_p is not None:
                kwargs["top_p"] = request.config.top_p
            if request.config.stop:
                kwargs["stop_sequences"] = request.config.stop

        if request.tools:
            kwargs["tools"] = self._convert_tools(request.tools)
            if request.tool_choice in ("auto", "none"):
                kwargs["tool_choice"] = {"type": request.tool_choice}
            elif request.tool_choice == "required":
                kwargs["tool_choice"] = {"type": "any"}

        return kwargs

    def _parse_message(self, message: Any) -> LLMResponse:
        text = ""
        reasoning = ""
        function_calls = []

        for block in message.content:
            if block.type == "text":
                text += block.text
            elif block.type == "thinking":
                reasoning += block.thinking
            elif block.type == "tool_use":
                function_calls.append(FunctionCall(
                    id=block.id,
                    name=block.name,
                    args=dict(block.input) if isinstance(block.input, dict) else {},
                ))

        return LLMResponse(
            text=text,
            reasoning=reasoning,
            function_calls=function_calls,
            finish_reason=message.stop_reason,
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
            model=message.model,
            raw_response=message,
        )

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate a response from Claude."""
        kwargs = self._build_kwargs(request)

        try:
            message = await self.client.messages.create(**kwargs)
            return self._parse_message(message)

        except anthropic.APIError as e:
            logger.error("Anthropic API error", error=str(e))
            raise

    async def stream(self, request: LLMRequest) -> AsyncIterator[LLMResponse]:
        """Stream a response from Claude.

        Text is yielded as it arrives; tool calls come whole in the
        closing fragment built from the final message.
        """
        kwargs = self._build_kwargs(request)

        try:
            async with self.client.messages.stream(**kwargs) as stream:
                async for text in stream.text_stream:
                    yield LLMResponse(text=text, model=self.model)
                final = await stream.get_final_message()

        except anthropic.APIError as e:
            logger.error("Anthropic streaming error", error=str(e))
            raise

        parsed = self._parse_message(final)
        yield LLMResponse(
            function_calls=parsed.function_calls,
            finish_reason=parsed.finish_reason,
            input_tokens=parsed.input_tokens,
            output_tokens=parsed.output_tokens,
            model=parsed.model,
            raw_response=final,
        )
