"""
Prompt templates with ``{{key}}`` placeholders.

A template may carry a data source that is consulted once per compile,
before the caller's values are applied. Placeholders without a value are
left in place.
"""

from typing import Mapping, Optional, Protocol, runtime_checkable

from agentloop.utils.logger import get_logger

log = get_logger(__name__)


@runtime_checkable
class TemplateDataSource(Protocol):
    """Produces placeholder values at invoke time (clock, user profile, ...)."""

    async def get_values(self) -> dict[str, str]:
        ...


class StaticDataSource:
    """Data source returning a fixed mapping."""

    def __init__(self, values: Mapping[str, str]) -> None:
        self.values = dict(values)

    async def get_values(self) -> dict[str, str]:
        return dict(self.values)


def _fill(content: str, values: Mapping[str, str]) -> str:
    for key, value in values.items():
        content = content.replace("{{" + key + "}}", str(value))
    return content


class Template:
    """
    Usage:
        template = Template.simple("Summarize {{topic}} in {{words}} words.")
        prompt = await template.compile({"topic": "rust", "words": "50"})
    """

    def __init__(
        self, content: str, data_source: Optional[TemplateDataSource] = None
    ) -> None:
        self.content = content
        self.data_source = data_source

    @classmethod
    def simple(cls, content: str) -> "Template":
        return cls(content)

    async def compile(self, data: Optional[Mapping[str, str]] = None) -> str:
        filled = self.content

        if self.data_source is not None:
            generated = await self.data_source.get_values()
            log.debug(f"Template data source supplied keys: {sorted(generated)}")
            filled = _fill(filled, generated)

        return _fill(filled, data or {})

    def __repr__(self) -> str:
        source = type(self.data_source).__name__ if self.data_source else None
        return f"Template(content={self.content!r}, data_source={source})"
