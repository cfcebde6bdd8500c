import pytest

from agent_gateway.agentic.exceptions import RegistryFrozenError
from agent_gateway.agentic.tools.registry import ToolRegistry


def test_discovered_registry_is_closed(global_registry):
    assert global_registry.frozen
    assert global_registry.names() == ["save_order_draft", "summarize_order_requests"]
    with pytest.raises(RegistryFrozenError):
        global_registry.register(global_registry.get("save_order_draft"))


def test_duplicate_registration_is_rejected(global_registry):
    registry = ToolRegistry()
    spec = global_registry.get("save_order_draft")
    registry.register(spec)

    with pytest.raises(ValueError, match="already registered"):
        registry.register(spec)


def test_function_definitions_list_every_property_as_required(global_registry):
    definition = global_registry.get("save_order_draft").to_function_definition()
    params = definition["parameters"]

    assert definition["name"] == "save_order_draft"
    assert definition["strict"] is True
    assert params["additionalProperties"] is False
    assert set(params["required"]) == {
        "itemNum", "quantity", "packSize", "uom", "status", "confidence", "referencedOrderRequestId",
    }
    assert len(global_registry.function_definitions()) == 2
