"""
Static MCP resources and prompt templates.

Resources are rendered on every read, so ``time://current`` and
``metrics://state`` always reflect the moment of the request.
"""

import json
import platform
from datetime import datetime
from typing import Callable, Dict, List, Optional
from urllib.parse import unquote

from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.types import (
    GetPromptResult,
    Prompt,
    PromptArgument,
    PromptMessage,
    Resource,
    ResourceTemplate,
    TextContent,
)

from okcomputer.core.errors import InputRejectedError, PromptNotFoundError, ResourceNotFoundError
from okcomputer.state.store import StateStore

from mcp_server.handlers.system_handlers import uptime_seconds

ECHO_SCHEME = "echo://"
JSON_MIME = "application/json"
TEXT_MIME = "text/plain"


class Catalog:
    """Resources (info, time, echo, metrics) and prompts (assistant, code_review)"""

    def __init__(self, state: StateStore):
        self.state = state
        self.settings = state.settings

        self._resources: Dict[str, tuple[Resource, Callable[[], str]]] = {
            "info://server": (
                Resource(
                    uri="info://server",
                    name="Server Information",
                    description="Basic information about this MCP server",
                    mimeType=JSON_MIME,
                ),
                self._server_info,
            ),
            "time://current": (
                Resource(
                    uri="time://current",
                    name="Current Time",
                    description="Returns the current server time",
                    mimeType=JSON_MIME,
                ),
                self._current_time,
            ),
            "metrics://state": (
                Resource(
                    uri="metrics://state",
                    name="Learning State",
                    description="Live snapshot of metrics, knowledge base and optimizer config",
                    mimeType=JSON_MIME,
                ),
                self._state_snapshot,
            ),
        }

        self._prompts: Dict[str, tuple[Prompt, Callable[[Dict[str, str]], str]]] = {
            "assistant": (
                Prompt(
                    name="assistant",
                    description="A helpful assistant prompt template",
                    arguments=[
                        PromptArgument(name="task", description="The task you need help with", required=True),
                        PromptArgument(
                            name="style",
                            description="Communication style (formal, casual, technical)",
                            required=False,
                        ),
                    ],
                ),
                _assistant_prompt,
            ),
            "code_review": (
                Prompt(
                    name="code_review",
                    description="Prompt template for code review",
                    arguments=[
                        PromptArgument(name="code", description="The code to review", required=True),
                        PromptArgument(name="language", description="Programming language", required=False),
                    ],
                ),
                _code_review_prompt,
            ),
        }

    # ========== RESOURCES ==========

    def list_resources(self) -> List[Resource]:
        return [resource for resource, _ in self._resources.values()]

    def list_resource_templates(self) -> List[ResourceTemplate]:
        return [
            ResourceTemplate(
                uriTemplate="echo://{message}",
                name="Echo Resource",
                description="Echoes back any message provided in the URI",
                mimeType=TEXT_MIME,
            )
        ]

    def read_resource(self, uri: str) -> ReadResourceContents:
        uri = str(uri)
        if uri in self._resources:
            resource, render = self._resources[uri]
            return ReadResourceContents(content=render(), mime_type=resource.mimeType)

        if uri.startswith(ECHO_SCHEME):
            return ReadResourceContents(content=unquote(uri[len(ECHO_SCHEME):]), mime_type=TEXT_MIME)

        raise ResourceNotFoundError(f"Resource not found: {uri}")

    def _server_info(self) -> str:
        return json.dumps({
            "name": self.settings.SERVER_NAME,
            "version": self.settings.SERVER_VERSION,
            "description": self.settings.SERVER_DESCRIPTION,
            "uptime": uptime_seconds(),
            "platform": platform.system().lower(),
            "python_version": platform.python_version(),
        }, indent=2)

    def _current_time(self) -> str:
        now = datetime.now().astimezone()
        return json.dumps({
            "timestamp": self.state.now_iso(),
            "timezone": now.tzname(),
        }, indent=2)

    def _state_snapshot(self) -> str:
        return json.dumps(self.state.snapshot(), indent=2, default=str)

    # ========== PROMPTS ==========

    def list_prompts(self) -> List[Prompt]:
        return [prompt for prompt, _ in self._prompts.values()]

    def get_prompt(self, name: str, arguments: Optional[Dict[str, str]] = None) -> GetPromptResult:
        entry = self._prompts.get(name)
        if entry is None:
            raise PromptNotFoundError(f"Prompt not found: {name}")

        prompt, render = entry
        arguments = arguments or {}
        for argument in prompt.arguments or []:
            if argument.required and not arguments.get(argument.name):
                raise InputRejectedError(f"Missing required argument '{argument.name}' for prompt {name}")

        return GetPromptResult(
            description=prompt.description,
            messages=[
                PromptMessage(role="user", content=TextContent(type="text", text=render(arguments))),
            ],
        )


def _assistant_prompt(args: Dict[str, str]) -> str:
    style = args.get("style") or "helpful"
    return f"You are a {style} assistant. Please help me with the following task: {args['task']}"


def _code_review_prompt(args: Dict[str, str]) -> str:
    language = args.get("language") or ""
    return f"Please review the following {language} code and provide feedback:\n\n```\n{args['code']}\n```"
