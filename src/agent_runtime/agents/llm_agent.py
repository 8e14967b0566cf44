"""
LLM agent - the multi-turn tool execution loop.

Each turn:
1. Builds a request: renders the instruction from session state, rebuilds
   history from the event log, collects the effective tools and applies
   the request processors
2. Calls the model, counting the call against the shared budget
   (streaming mode emits a partial event per text/reasoning fragment)
3. Executes requested tools in order, emitting a call and a response event
   for each, then loops back to 1
4. With no tool calls left, stores the answer under ``output_key`` and ends

The engine only suspends while awaiting the model and while awaiting a
tool; both points observe cooperative cancellation.
"""

from contextlib import aclosing
from typing import Any, AsyncIterator

import structlog

from ..errors import InvocationCancelled
from ..events import (
    HISTORY_ROLES,
    Content,
    Event,
    EventActions,
    EventCompaction,
    FunctionCall,
    FunctionResponse,
    Part,
)
from ..llm.base import BaseLLM, GenerationConfig, LLMRequest, LLMResponse
from ..tools import (
    TRANSFER_TO_AGENT,
    BaseTool,
    Tool,
    ToolContext,
    ToolProvider,
    ToolRegistry,
    create_transfer_to_agent_tool,
)
from .base import BaseAgent
from .context import InvocationContext, StreamingMode
from .hooks import AgentCallbacks, RequestProcessor
from .instructions import render_instruction

logger = structlog.get_logger()

SUMMARY_PREFIX = "[Previous conversation summary]: "


async def _next_fragment(stream: AsyncIterator[LLMResponse]) -> LLMResponse | None:
    try:
        return await anext(stream)
    except StopAsyncIteration:
        return None


class LlmAgent(BaseAgent):
    """Agent driven by a language model with tools and sub-agent delegation."""

    def __init__(
        self,
        name: str,
        llm: BaseLLM,
        instruction: str = "",
        description: str = "",
        tools: list[BaseTool | Tool] | None = None,
        sub_agents: list[BaseAgent] | None = None,
        output_key: str | None = None,
        enable_auto_flow: bool = True,
        tool_providers: list[ToolProvider] | None = None,
        request_processors: list[RequestProcessor] | None = None,
        callbacks: AgentCallbacks | None = None,
        generation_config: GenerationConfig | None = None,
        use_compacted_history: bool = False,
    ):
        super().__init__(name=name, description=description, sub_agents=sub_agents)
        self.llm = llm
        self.instruction = instruction
        self.tools = list(tools or [])
        self.output_key = output_key
        self.enable_auto_flow = enable_auto_flow
        self.tool_providers = list(tool_providers or [])
        self.request_processors = list(request_processors or [])
        self.callbacks = callbacks
        self.generation_config = generation_config
        self.use_compacted_history = use_compacted_history

    # ------------------------------------------------------------------
    # BuildRequest
    # ------------------------------------------------------------------

    def _auto_flow_active(self) -> bool:
        return self.enable_auto_flow and bool(self.sub_agents)

    def _effective_tools(self, context: InvocationContext) -> list[BaseTool | Tool]:
        """Configured tools, then the transfer tool, then provider tools."""
        candidates: list[BaseTool | Tool] = list(self.tools)
        if self._auto_flow_active():
            candidates.append(create_transfer_to_agent_tool())
        for provider in self.tool_providers:
            candidates.extend(provider.get_tools(context))

        tools: list[BaseTool | Tool] = []
        seen: set[str] = set()
        for tool in candidates:
            if tool.name in seen:
                continue
            seen.add(tool.name)
            tools.append(tool)
        return tools

    def _transfer_instruction(self) -> str:
        lines = [
            f"You can hand the conversation to another agent with the `{TRANSFER_TO_AGENT}` "
            "tool when it is better suited to respond. Available agents:",
        ]
        for agent in self.sub_agents:
            if agent.description:
                lines.append(f"- {agent.name}: {agent.description}")
            else:
                lines.append(f"- {agent.name}")
        return "\n".join(lines)

    def _build_instruction(self, context: InvocationContext) -> str:
        instruction = render_instruction(self.instruction, context.session.state)
        if self._auto_flow_active():
            block = self._transfer_instruction()
            instruction = f"{instruction}\n\n{block}" if instruction else block
        return instruction

    @staticmethod
    def _is_visible_branch(event: Event, context: InvocationContext) -> bool:
        """Events of the current branch and its ancestors are visible."""
        if not event.branch or not context.branch:
            return True
        return context.branch == event.branch or context.branch.startswith(event.branch + ".")

    def _covering_compaction(
        self,
        event: Event,
        compactions: list[EventCompaction],
    ) -> EventCompaction | None:
        # Latest summary wins where windows overlap
        for compaction in reversed(compactions):
            if compaction.start_timestamp <= event.timestamp <= compaction.end_timestamp:
                return compaction
        return None

    def _build_contents(self, context: InvocationContext) -> list[Content]:
        """Rebuild conversation history from the session event log.

        Partial events, events without content and roles outside
        user/model/tool are dropped. The current user input is placed
        before this invocation's first event unless the log already has it.
        """
        events = list(context.session.events)
        user_content = context.user_content
        user_placed = user_content is None or any(
            e.invocation_id == context.invocation_id
            and e.author == "user"
            and not e.partial
            and e.content is not None
            for e in events
        )

        compactions: list[EventCompaction] = []
        if self.use_compacted_history:
            compactions = [e.actions.compaction for e in events if e.actions.compaction is not None]
        summarized: set[int] = set()

        contents: list[Content] = []
        for event in events:
            if event.partial or event.content is None or not event.content.parts:
                continue
            if event.content.role not in HISTORY_ROLES:
                continue
            if not self._is_visible_branch(event, context):
                continue

            covering = self._covering_compaction(event, compactions) if compactions else None
            if covering is not None:
                if id(covering) not in summarized:
                    summarized.add(id(covering))
                    summary = covering.compacted_content.text
                    contents.append(Content.from_text(f"{SUMMARY_PREFIX}{summary}", role="user"))
                continue

            if not user_placed and event.invocation_id == context.invocation_id:
                contents.append(user_content)
                user_placed = True
            contents.append(event.content)

        if not user_placed:
            trailing = contents[-1] if contents else None
            if not (trailing is not None and trailing.role == "user" and trailing.text == user_content.text):
                contents.append(user_content)

        return contents

    async def _build_request(self, context: InvocationContext) -> tuple[LLMRequest, ToolRegistry]:
        registry = ToolRegistry(self._effective_tools(context))
        definitions = registry.get_definitions()

        request = LLMRequest(
            system_instruction=self._build_instruction(context) or None,
            contents=self._build_contents(context),
            tools=definitions or None,
            tool_choice="auto" if definitions else None,
            config=self.generation_config,
        )

        for processor in sorted(self.request_processors, key=lambda p: p.priority):
            request = await processor.process(request, context)

        return request, registry

    # ------------------------------------------------------------------
    # Event construction
    # ------------------------------------------------------------------

    def _event(self, context: InvocationContext, content: Content, **kwargs: Any) -> Event:
        return Event(
            author=self.name,
            content=content,
            invocation_id=context.invocation_id,
            branch=context.branch,
            **kwargs,
        )

    async def _emit(self, context: InvocationContext, event: Event) -> Event:
        return await context.append_event(event)

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def _run_impl(self, context: InvocationContext) -> AsyncIterator[Event]:
        streaming = context.run_config.streaming_mode == StreamingMode.SSE

        while True:
            request, registry = await self._build_request(context)

            override = None
            if self.callbacks is not None:
                override = await self.callbacks.before_model(context, request)

            function_calls: list[FunctionCall] = []
            final_text = ""

            try:
                if override is not None:
                    logger.info("Model call replaced by callback", agent=self.name)
                    response = LLMResponse(
                        text=override.text,
                        function_calls=override.function_calls,
                        content=override,
                    )
                    function_calls = response.function_calls
                    if not function_calls:
                        async for event in self._finalize_single(context, response):
                            yield event
                        return

                elif streaming:
                    fragments: list[str] = []
                    async with aclosing(self._stream_model(context, request, function_calls, fragments)) as events:
                        async for event in events:
                            yield event
                    if not function_calls:
                        self._store_output(context, "".join(fragments))
                        return

                else:
                    response = await self._call_model(context, request)
                    function_calls = response.function_calls
                    if not function_calls:
                        async for event in self._finalize_single(context, response):
                            yield event
                        return

            except InvocationCancelled:
                logger.info("Invocation cancelled while awaiting model", agent=self.name)
                return

            transferred = False
            async with aclosing(self._execute_tools(context, registry, function_calls)) as events:
                async for event in events:
                    yield event
                    if event.transfer_to:
                        transferred = True
            if transferred:
                return

    # ------------------------------------------------------------------
    # AwaitModel
    # ------------------------------------------------------------------

    async def _call_model(self, context: InvocationContext, request: LLMRequest) -> LLMResponse:
        context.cancellation.raise_if_cancelled()
        call_number = context.increment_and_enforce_llm_calls_limit()
        logger.debug("Calling model", agent=self.name, call_number=call_number)

        response = await context.cancellation.run(self.llm.generate(request))

        if self.callbacks is not None:
            replacement = await self.callbacks.after_model(context, response)
            if replacement is not None:
                response = LLMResponse(
                    text=replacement.text,
                    function_calls=replacement.function_calls,
                    content=replacement,
                    finish_reason=response.finish_reason,
                )
        return response

    async def _stream_model(
        self,
        context: InvocationContext,
        request: LLMRequest,
        function_calls: list[FunctionCall],
        fragments: list[str],
    ) -> AsyncIterator[Event]:
        """Stream one model call, yielding partial events.

        Function calls are collected into ``function_calls`` (deduplicated
        by id); text fragments are collected into ``fragments``.
        """
        context.cancellation.raise_if_cancelled()
        call_number = context.increment_and_enforce_llm_calls_limit()
        logger.debug("Streaming model", agent=self.name, call_number=call_number)

        seen_ids: set[str] = set()
        stream = self.llm.stream(request)
        try:
            while True:
                fragment = await context.cancellation.run(_next_fragment(stream))
                if fragment is None:
                    break

                if fragment.reasoning:
                    content = Content(role="model", parts=(Part(reasoning=fragment.reasoning),))
                    yield await self._emit(context, self._event(context, content, partial=True))

                if fragment.text:
                    fragments.append(fragment.text)
                    content = Content(role="model", parts=(Part(text=fragment.text),))
                    yield await self._emit(context, self._event(context, content, partial=True))

                for call in fragment.function_calls:
                    if not call.id and not call.name:
                        continue
                    if call.id:
                        if call.id in seen_ids:
                            continue
                        seen_ids.add(call.id)
                    function_calls.append(call)
        finally:
            await stream.aclose()

    # ------------------------------------------------------------------
    # ExecuteTools
    # ------------------------------------------------------------------

    async def _execute_tools(
        self,
        context: InvocationContext,
        registry: ToolRegistry,
        function_calls: list[FunctionCall],
    ) -> AsyncIterator[Event]:
        for call in function_calls:
            call_content = Content(role="model", parts=(Part(function_call=call),))
            yield await self._emit(context, self._event(context, call_content))

            if call.name not in registry:
                # TODO: answer unknown tools with an error function response
                logger.warning("Tool not found, skipping call", agent=self.name, tool_name=call.name, call_id=call.id)
                continue

            if self.callbacks is not None:
                await self.callbacks.on_tool_start(context, call)

            tool_context = ToolContext(
                session=context.session,
                invocation_id=context.invocation_id,
                agent_name=self.name,
                function_call_id=call.id,
                branch=context.branch,
                cancellation=context.cancellation,
            )
            result, actions = await registry.execute(call.name, call.args, tool_context)

            if self.callbacks is not None:
                await self.callbacks.on_tool_end(context, call, result)

            response = FunctionResponse(
                name=call.name,
                response=result,
                id=call.id,
                error=result.get("error") if isinstance(result.get("error"), str) else None,
            )
            response_event = self._event(
                context,
                Content(role="tool", parts=(Part(function_response=response),)),
                actions=EventActions(
                    escalate=actions.escalate,
                    transfer_to=actions.transfer_to_agent,
                    state_delta=dict(actions.state_delta),
                ),
            )
            yield await self._emit(context, response_event)

            if actions.transfer_to_agent:
                logger.info("Tool requested transfer", agent=self.name, target=actions.transfer_to_agent)
                return

    # ------------------------------------------------------------------
    # Finalize
    # ------------------------------------------------------------------

    def _store_output(self, context: InvocationContext, text: str) -> None:
        if self.output_key and text:
            context.session.state[self.output_key] = text

    async def _finalize_single(self, context: InvocationContext, response: LLMResponse) -> AsyncIterator[Event]:
        content = response.to_content()
        if content.role != "model":
            content = Content(role="model", parts=content.parts)
        text = response.text or content.text

        state_delta = {self.output_key: text} if self.output_key and text else {}
        event = self._event(context, content, actions=EventActions(state_delta=state_delta))
        yield await self._emit(context, event)
