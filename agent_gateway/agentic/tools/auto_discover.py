# agent_gateway/agentic/tools/auto_discover.py
import pkgutil
import importlib
import agent_gateway.agentic.tools
from agent_gateway.agentic.tools.registry import tool_registry
#自动import agent_gateway.agentic.tools 包下的所有模块，触发工具注册逻辑
'''
Agent/App启动时：

from agent_gateway.agentic.tools.auto_discover import discover_tools
registry = discover_tools()# 导入 tools 包下的所有模块，把工具注册到全局 tool_registry 并冻结

registry.get("tool_name") # 现在可以拿到工具规范
'''
def discover_tools():
    if tool_registry.frozen:
        return tool_registry
    for _, module_name, _ in pkgutil.walk_packages(
        agent_gateway.agentic.tools.__path__,
        agent_gateway.agentic.tools.__name__ + "."
    ):
        importlib.import_module(module_name)
    tool_registry.freeze()
    return tool_registry
