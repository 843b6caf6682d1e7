"""GHL MCP Bridge - GoHighLevel CRM tools over MCP with dual OAuth."""

__version__ = "1.0.0"
