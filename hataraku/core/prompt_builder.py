"""
System Prompt Builder — composes the system prompt from ordered, named sections.

Known sections form a fixed enum with a default order; callers can disable
them by name, override their text through PromptConfig, or add custom
sections (plain text, or a callable that renders from the task's
PromptContext). Each enabled, non-empty section is rendered as::

    TITLE

    content

and sections are joined with ``====`` separators.
"""

from __future__ import annotations
import json
import os
import platform
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Union

from .models import ToolSchema
from .thread import Thread
from ..prompts import sections as text

SECTION_SEPARATOR = "\n\n====\n\n"


class PromptSectionName(str, Enum):
    ROLE = "role"
    SYSTEM_INFO = "system-info"
    TOOL_USE = "tool-use"
    TOOL_LIST = "tool-list"
    TOOL_USE_GUIDELINES = "tool-use-guidelines"
    SCHEMA_VALIDATION = "schema-validation"
    RULES = "rules"
    OBJECTIVE = "objective"
    CUSTOM_INSTRUCTIONS = "custom-instructions"
    THREAD_CONTEXT = "thread-context"


DEFAULT_ORDER: dict[str, int] = {
    PromptSectionName.ROLE.value: 10,
    PromptSectionName.SYSTEM_INFO.value: 20,
    PromptSectionName.TOOL_USE.value: 30,
    PromptSectionName.TOOL_LIST.value: 35,
    PromptSectionName.TOOL_USE_GUIDELINES.value: 40,
    PromptSectionName.SCHEMA_VALIDATION.value: 50,
    PromptSectionName.RULES.value: 60,
    PromptSectionName.OBJECTIVE.value: 70,
    PromptSectionName.CUSTOM_INSTRUCTIONS.value: 80,
    PromptSectionName.THREAD_CONTEXT.value: 90,
}
CUSTOM_SECTION_ORDER = 100


@dataclass
class PromptContext:
    """Per-build inputs available to section renderers."""
    cwd: str
    tools: list[ToolSchema] = field(default_factory=list)
    output_schema: Optional[dict] = None
    thread: Optional[Thread] = None


SectionContent = Union[str, Callable[[PromptContext], str]]


@dataclass
class PromptSection:
    name: str
    content: SectionContent
    order: int = CUSTOM_SECTION_ORDER
    enabled: bool = True

    def render(self, context: PromptContext) -> str:
        body = self.content(context) if callable(self.content) else self.content
        return (body or "").strip()


@dataclass
class PromptConfig:
    """Prompt customization, resolved once when the builder is created."""
    role_definition: Optional[str] = None
    custom_instructions: Optional[str] = None
    additional_rules: list[str] = field(default_factory=list)
    additional_system_info: dict[str, str] = field(default_factory=dict)
    disabled_sections: list[str] = field(default_factory=list)
    custom_sections: list[PromptSection] = field(default_factory=list)


def format_section_name(name: str) -> str:
    """'tool-use-guidelines' → 'TOOL USE GUIDELINES'"""
    return " ".join(word.upper() for word in name.split("-"))


def _section_key(name: Union[str, PromptSectionName]) -> str:
    return name.value if isinstance(name, PromptSectionName) else name


class SystemPromptBuilder:
    """
    Build the system prompt for one agent.

    Usage::

        builder = SystemPromptBuilder(PromptConfig(role_definition="..."), cwd="/repo")
        builder.disable_section(PromptSectionName.RULES)
        prompt = builder.build(tools=registry.get_schemas())
    """

    def __init__(self, config: Optional[PromptConfig] = None, cwd: Optional[str] = None):
        self.config = config or PromptConfig()
        self.cwd = cwd or os.getcwd()
        self._defaults: dict[str, SectionContent] = {
            PromptSectionName.ROLE.value: self.config.role_definition or text.DEFAULT_ROLE,
            PromptSectionName.SYSTEM_INFO.value: self._section_system_info,
            PromptSectionName.TOOL_USE.value: text.TOOL_USE,
            PromptSectionName.TOOL_LIST.value: self._section_tool_list,
            PromptSectionName.TOOL_USE_GUIDELINES.value: text.TOOL_USE_GUIDELINES,
            PromptSectionName.SCHEMA_VALIDATION.value: self._section_schema_validation,
            PromptSectionName.RULES.value: self._section_rules,
            PromptSectionName.OBJECTIVE.value: text.OBJECTIVE,
            PromptSectionName.CUSTOM_INSTRUCTIONS.value: self._section_custom_instructions,
            PromptSectionName.THREAD_CONTEXT.value: self._section_thread_context,
        }
        self._sections: dict[str, PromptSection] = {}

        disabled = {_section_key(n) for n in self.config.disabled_sections}
        for name in sorted(self._defaults, key=DEFAULT_ORDER.get):
            if name not in disabled:
                self._sections[name] = self._default_section(name)
        for section in self.config.custom_sections:
            if section.name not in disabled:
                self._sections[section.name] = section

    def _default_section(self, name: str) -> PromptSection:
        return PromptSection(name=name, content=self._defaults[name], order=DEFAULT_ORDER[name])

    # ── Mutation ────────────────────────────────────────────────────

    def add_section(self, section: PromptSection) -> "SystemPromptBuilder":
        """Add or replace a section by name."""
        section.enabled = True
        self._sections[section.name] = section
        return self

    def disable_section(self, name: Union[str, PromptSectionName]) -> "SystemPromptBuilder":
        section = self._sections.get(_section_key(name))
        if section is not None:
            section.enabled = False
        return self

    def enable_section(self, name: Union[str, PromptSectionName]) -> "SystemPromptBuilder":
        """Re-enable a section. Known sections are restored with their default content."""
        key = _section_key(name)
        if key in self._defaults:
            self._sections[key] = self._default_section(key)
        elif key in self._sections:
            self._sections[key].enabled = True
        return self

    @property
    def section_names(self) -> list[str]:
        """Names of enabled sections, in render order."""
        return [s.name for s in self._ordered()]

    def _ordered(self) -> list[PromptSection]:
        return sorted(
            (s for s in self._sections.values() if s.enabled),
            key=lambda s: s.order,
        )

    # ── Build ───────────────────────────────────────────────────────

    def build(
        self,
        tools: list[ToolSchema],
        output_schema: Optional[dict] = None,
        thread: Optional[Thread] = None,
    ) -> str:
        """
        Assemble the complete system prompt.

        Args:
            tools: Schemas of the registered tools
            output_schema: JSON schema of the expected result, if any
            thread: The task's thread; its context entries become a section

        Returns:
            The prompt text ("" when every section is disabled or empty)
        """
        context = PromptContext(
            cwd=self.cwd,
            tools=list(tools),
            output_schema=output_schema,
            thread=thread,
        )
        rendered = []
        for section in self._ordered():
            body = section.render(context)
            if body:
                rendered.append(f"{format_section_name(section.name)}\n\n{body}")
        return SECTION_SEPARATOR.join(rendered)

    # ── Dynamic sections ────────────────────────────────────────────

    def _section_system_info(self, context: PromptContext) -> str:
        lines = [
            f"Operating System: {platform.system()} {platform.release()}".rstrip(),
            f"Default Shell: {os.environ.get('SHELL') or os.environ.get('COMSPEC') or 'unknown'}",
            f"Home Directory: {os.path.expanduser('~')}",
            f"Current Working Directory: {context.cwd}",
            f"Current Date: {datetime.now().strftime('%A, %B %d, %Y')}",
        ]
        for key, value in self.config.additional_system_info.items():
            lines.append(f"{key}: {value}")
        return "\n".join(lines)

    def _section_tool_list(self, context: PromptContext) -> str:
        """
        Tool definitions: name, description, parameters and a usage example.

        attempt_completion is always listed first; it is handled by the agent
        itself and is never a registered tool.
        """
        parts = [text.ATTEMPT_COMPLETION]
        for schema in context.tools:
            parts.append(self._format_tool(schema))
        return "\n\n".join(parts)

    @staticmethod
    def _format_tool(schema: ToolSchema) -> str:
        lines = [f"## {schema.name}", f"Description: {schema.description}"]
        params = schema.parameters
        if params:
            lines.append("Parameters:")
            for name, prop in params.items():
                flag = "required" if prop.get("required") else "optional"
                desc = prop.get("description", "")
                kind = prop.get("type", "string")
                lines.append(f"- {name}: ({flag}, {kind}) {desc}".rstrip())
        else:
            lines.append("Parameters: none")
        if schema.output_schema:
            lines.append(f"Returns: {json.dumps(schema.output_schema)}")
        lines.append("Usage:")
        lines.append(f"<{schema.name}>")
        for name in params:
            lines.append(f"<{name}>{name} value here</{name}>")
        lines.append(f"</{schema.name}>")
        return "\n".join(lines)

    def _section_schema_validation(self, context: PromptContext) -> str:
        if not context.output_schema:
            return ""
        return text.SCHEMA_VALIDATION

    def _section_rules(self, context: PromptContext) -> str:
        rules = list(text.RULES) + list(self.config.additional_rules)
        return "\n".join(f"- {rule}" for rule in rules)

    def _section_custom_instructions(self, context: PromptContext) -> str:
        instructions = (self.config.custom_instructions or "").strip()
        if not instructions:
            return ""
        return f"{text.CUSTOM_INSTRUCTIONS_PREAMBLE}\n\n{instructions}"

    def _section_thread_context(self, context: PromptContext) -> str:
        if context.thread is None:
            return ""
        rendered = context.thread.render_context()
        if not rendered:
            return ""
        return f"{text.THREAD_CONTEXT_PREAMBLE}\n\n{rendered}"
