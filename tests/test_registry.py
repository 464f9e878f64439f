import unittest

from agent_runtime import __version__
from agent_runtime.execution.sandbox import PathSandbox
from agent_runtime.tools import build_default_tool_registry
from agent_runtime.tools.base import Task, ToolRegistrationError, ToolRegistry, ToolRequest, ToolResult
from agent_runtime.tools.introspection import EchoTool, ToolsListTool, VersionTool


class _NamedTool:
    def __init__(self, name: str, output: str = "ok"):
        self.name = name
        self._output = output

    async def run(self, request: ToolRequest) -> ToolResult:
        return ToolResult.success(self._output)


class _ExplodingTool:
    name = "boom"

    async def run(self, request: ToolRequest) -> ToolResult:
        raise RuntimeError("disk on fire at /secret/path")


class TestToolRegistry(unittest.IsolatedAsyncioTestCase):
    def test_register_rejects_none_blank_and_duplicates(self):
        registry = ToolRegistry(["echo"])
        with self.assertRaises(ToolRegistrationError):
            registry.register(None)
        with self.assertRaises(ToolRegistrationError):
            registry.register(_NamedTool("  "))
        registry.register(EchoTool())
        with self.assertRaises(ToolRegistrationError):
            registry.register(_NamedTool("ECHO"))

    def test_registration_error_is_value_error(self):
        self.assertTrue(issubclass(ToolRegistrationError, ValueError))

    def test_names_are_lower_cased(self):
        registry = ToolRegistry(["mixed.case"])
        registry.register(_NamedTool("Mixed.Case"))
        self.assertEqual(registry.names(), ["mixed.case"])
        self.assertIsNotNone(registry.get("MIXED.CASE"))

    def test_list_allowed_is_sorted_intersection_without_duplicates(self):
        registry = ToolRegistry(["Version", "echo", " ECHO ", "", "missing"])
        registry.register(VersionTool())
        registry.register(EchoTool())
        registry.register(_NamedTool("hidden"))
        self.assertEqual(registry.list_allowed(), ["echo", "version"])

    def test_empty_allow_list_denies_everything(self):
        registry = ToolRegistry([])
        registry.register(EchoTool())
        self.assertFalse(registry.configured)
        self.assertEqual(registry.list_allowed(), [])
        self.assertFalse(registry.is_allowed("echo"))

    async def test_execute_unknown_tool(self):
        registry = ToolRegistry(["echo"])
        result = await registry.execute("nope", ToolRequest())
        self.assertFalse(result.ok)
        self.assertEqual(result.output, 'unknown tool "nope" (see tools.list)')

    async def test_execute_not_allowed(self):
        registry = ToolRegistry(["version"])
        registry.register(EchoTool())
        result = await registry.execute("echo", ToolRequest(args="hi"))
        self.assertFalse(result.ok)
        self.assertEqual(result.output, 'tool "echo" is not allowed (see tools.list)')

    async def test_execute_blank_name(self):
        result = await ToolRegistry(["echo"]).execute("  ", ToolRequest())
        self.assertFalse(result.ok)
        self.assertEqual(result.output, "tool name is required")

    async def test_execute_allowed_tool_case_insensitively(self):
        registry = ToolRegistry(["echo"])
        registry.register(EchoTool())
        result = await registry.execute("ECHO", ToolRequest(args="  hello  "))
        self.assertTrue(result.ok)
        self.assertEqual(result.output, "hello")

    async def test_crashing_tool_returns_generic_failure(self):
        registry = ToolRegistry(["boom"])
        registry.register(_ExplodingTool())
        with self.assertLogs("agent_runtime.tools.base", level="ERROR") as logs:
            result = await registry.execute("boom", ToolRequest(task=Task(agent="a")))
        self.assertFalse(result.ok)
        self.assertEqual(result.output, "tool failed")
        self.assertIn("tool_crashed", "\n".join(logs.output))


class TestIntrospectionTools(unittest.IsolatedAsyncioTestCase):
    async def test_version_reports_package_version(self):
        result = await VersionTool().run(ToolRequest())
        self.assertEqual(result.output, f"runtime v{__version__}")

    async def test_tools_list_reports_allowed_names(self):
        registry = ToolRegistry(["tools.list", "echo"])
        registry.register(ToolsListTool(registry))
        registry.register(EchoTool())
        registry.register(VersionTool())
        result = await registry.execute("tools.list", ToolRequest())
        self.assertTrue(result.ok)
        self.assertEqual(result.output, "echo\ntools.list")

    async def test_tools_list_reports_nothing_enabled(self):
        registry = ToolRegistry([])
        tool = ToolsListTool(registry)
        registry.register(tool)
        result = await tool.run(ToolRequest())
        self.assertEqual(result.output, "no tools enabled (set RUNTIME_ALLOWED_TOOLS)")


class TestDefaultRegistry(unittest.TestCase):
    def test_registers_every_builtin_tool(self):
        registry = build_default_tool_registry(PathSandbox(), allowed_tools=["echo"])
        self.assertEqual(
            registry.names(),
            sorted(
                [
                    "browser.canvas",
                    "command.exec",
                    "echo",
                    "file.delete",
                    "file.edit",
                    "file.exists",
                    "file.grep",
                    "file.list",
                    "file.read",
                    "file.sha256",
                    "file.stat",
                    "file.tail",
                    "file.write",
                    "tools.list",
                    "version",
                ]
            ),
        )
        self.assertEqual(registry.list_allowed(), ["echo"])

    def test_memory_tools_only_with_source_root(self):
        registry = build_default_tool_registry(PathSandbox(), memory_source_root="notes")
        self.assertIn("memory.get", registry.names())
        self.assertIn("memory.list", registry.names())


if __name__ == "__main__":
    unittest.main()
