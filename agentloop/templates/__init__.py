from agentloop.templates.template import StaticDataSource, Template, TemplateDataSource

__all__ = ["StaticDataSource", "Template", "TemplateDataSource"]
