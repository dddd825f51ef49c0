import json

from flare_ai.tools import catalog
from flare_ai.tools.catalog import ToolSafety

EXPECTED_NAMES = [
    "read_file",
    "write_file",
    "list_directory",
    "search_files",
    "delete_file",
    "get_system_info",
    "run_command",
    "read_clipboard",
    "write_clipboard",
]


def test_definitions_cover_every_builtin_tool_in_order() -> None:
    assert [definition.name for definition in catalog.definitions()] == EXPECTED_NAMES


def test_safety_table() -> None:
    safe = {name for name in EXPECTED_NAMES if catalog.safety_of(name) is ToolSafety.SAFE}

    assert safe == {"read_file", "list_directory", "search_files", "get_system_info"}
    assert catalog.safety_of("format_disk") is ToolSafety.DANGEROUS


def test_parameter_schemas_are_plain_objects() -> None:
    by_name = {definition.name: definition.parameters for definition in catalog.definitions()}

    assert by_name["write_file"] == {
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "Absolute path to the file to write"},
            "content": {"type": "string", "description": "Content to write to the file"},
        },
        "required": ["path", "content"],
    }
    assert by_name["search_files"]["required"] == ["directory", "pattern"]
    assert by_name["get_system_info"] == {"type": "object", "properties": {}, "required": []}
    assert '"title"' not in json.dumps(by_name)


def test_openai_tools_shape() -> None:
    tools = catalog.openai_tools()

    assert len(tools) == len(EXPECTED_NAMES)
    first = tools[0]
    assert first["type"] == "function"
    assert first["function"]["name"] == "read_file"
    assert first["function"]["description"].startswith("Read the contents of a file")
    assert first["function"]["parameters"]["required"] == ["path"]


def test_supports_tools_allow_list() -> None:
    assert catalog.supports_tools("openai/gpt-4o")
    assert catalog.supports_tools("anthropic/claude-sonnet-4")
    assert catalog.supports_tools("google/gemini-2.0-flash-001")
    assert not catalog.supports_tools("mistralai/mistral-7b-instruct:free")
    assert not catalog.supports_tools("llama3")


def test_tool_infos_pair_definitions_with_safety() -> None:
    infos = {info.name: info for info in catalog.tool_infos()}

    assert infos["run_command"].safety is ToolSafety.DANGEROUS
    assert infos["run_command"].definition.name == "run_command"
    assert infos["read_clipboard"].description == "Read the current contents of the system clipboard."
