# agent_gateway/agentic/tools/registry.py
from typing import Dict, List, Optional
from agent_gateway.agentic.exceptions import RegistryFrozenError
from agent_gateway.agentic.schemas.tool_spec import ToolSpec


class ToolRegistry:
    '''
    工具名 -> ToolSpec 的映射。启动时注册完毕后 freeze()，之后映射是封闭的，
    运行期不能增删工具。
    '''

    def __init__(self):
        self._tools: Dict[str, ToolSpec] = {}
        self._frozen = False

    def register(self, spec: ToolSpec) -> None:
        '''
        Register a new tool specification.
        Raises ValueError if a tool with the same name is already registered,
        RegistryFrozenError after freeze().

        param:
        spec: ToolSpec - The tool specification to register.
        '''
        if self._frozen:
            raise RegistryFrozenError(f"Registry is frozen; cannot register {spec.name}")
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Optional[ToolSpec]:
        '''
        Get the tool specification by name.
        param:
        name: str - The name of the tool to retrieve.
        '''
        return self._tools.get(name)

    def names(self) -> List[str]:
        return sorted(self._tools)

    def function_definitions(self) -> List[dict]:
        return [self._tools[name].to_function_definition() for name in self.names()]

# 全局唯一实例，工具模块 import 时自动注册到这里
tool_registry = ToolRegistry()
