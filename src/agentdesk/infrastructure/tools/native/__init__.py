"""Built-in tools shipped with agentdesk."""

from agentdesk.infrastructure.tools.native.calculator import CalculatorTool
from agentdesk.infrastructure.tools.native.date_time import DateTimeTool
from agentdesk.infrastructure.tools.native.file_writer import FileWriterTool

BUILTIN_TOOLS = {
    "calculator": CalculatorTool,
    "date_time": DateTimeTool,
    "file_writer": FileWriterTool,
}

__all__ = ["BUILTIN_TOOLS", "CalculatorTool", "DateTimeTool", "FileWriterTool"]
