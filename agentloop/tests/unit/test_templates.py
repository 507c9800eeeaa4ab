"""
单元测试用于测试 Template 与模板调用

测试覆盖：
- 占位符替换
- 数据源优先于调用方数据
- invoke_with_template 系列入口
"""

import pytest
from conftest import ScriptedProvider, content_types, drain

from agentloop.agent.agent import Agent
from agentloop.errors import TemplateError
from agentloop.model.types import Message
from agentloop.templates import StaticDataSource, Template, TemplateDataSource


class CountingDataSource:
    """记录被调用次数的数据源"""

    def __init__(self):
        self.calls = 0

    async def get_values(self) -> dict[str, str]:
        self.calls += 1
        return {"today": "2024-05-01"}


class TestTemplate:
    """测试 Template.compile"""

    @pytest.mark.asyncio
    async def test_simple(self):
        template = Template.simple("Summarize {{topic}} in {{words}} words.")
        prompt = await template.compile({"topic": "Rust", "words": "50"})
        assert prompt == "Summarize Rust in 50 words."

    @pytest.mark.asyncio
    async def test_repeated_placeholder(self):
        template = Template.simple("{{name}}, oh {{name}}!")
        assert await template.compile({"name": "Ana"}) == "Ana, oh Ana!"

    @pytest.mark.asyncio
    async def test_missing_value_is_left_in_place(self):
        template = Template.simple("Hello {{name}} from {{city}}")
        assert await template.compile({"name": "Ana"}) == "Hello Ana from {{city}}"

    @pytest.mark.asyncio
    async def test_data_source_values_applied_first(self):
        """测试数据源的值先替换，调用方无法覆盖已替换的占位符"""
        source = StaticDataSource({"date": "2024-05-01"})
        template = Template("On {{date}}, {{who}} wrote", source)

        prompt = await template.compile({"date": "ignored", "who": "Ana"})

        assert prompt == "On 2024-05-01, Ana wrote"

    @pytest.mark.asyncio
    async def test_data_source_consulted_once(self):
        source = CountingDataSource()
        template = Template("Today is {{today}}. {{today}}", source)

        await template.compile()

        assert source.calls == 1

    def test_data_source_protocol(self):
        assert isinstance(StaticDataSource({}), TemplateDataSource)
        assert isinstance(CountingDataSource(), TemplateDataSource)


class TestInvokeWithTemplate:
    """测试 Agent 的模板入口"""

    @pytest.mark.asyncio
    async def test_invoke_with_template(self, config):
        provider = ScriptedProvider([Message.assistant("Done")])
        agent = await Agent.create(
            config,
            provider=provider,
            template=Template("Translate '{{text}}' on {{today}}", CountingDataSource()),
        )

        reply = await agent.invoke_with_template({"text": "dober dan"})

        assert reply.content == "Done"
        assert agent.get_history()[1] == Message.user(
            "Translate 'dober dan' on 2024-05-01"
        )

    @pytest.mark.asyncio
    async def test_template_structured_output(self, config):
        provider = ScriptedProvider([Message.assistant('{"word": "hello"}')])
        agent = await Agent.create(
            config.model_copy(
                update={
                    "response_format": {
                        "type": "object",
                        "properties": {"word": {"type": "string"}},
                        "required": ["word"],
                    }
                }
            ),
            provider=provider,
            template=Template.simple("Translate {{text}}"),
        )

        value = await agent.invoke_with_template_structured_output({"text": "živjo"})

        assert value == {"word": "hello"}

    @pytest.mark.asyncio
    async def test_without_template(self, config):
        """测试未配置模板时抛出 TemplateError 并发布 Error"""
        provider = ScriptedProvider()
        agent = await Agent.create(config, provider=provider)
        receiver = agent.subscribe_notifications()

        with pytest.raises(TemplateError):
            await agent.invoke_with_template({"text": "x"})

        assert content_types(drain(receiver)) == ["error"]
        assert provider.call_count == 0
        assert len(agent.get_history()) == 1
