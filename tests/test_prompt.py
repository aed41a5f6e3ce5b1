"""Tests for prompt files and template variables."""

import pytest

from ai_inference.core.errors import ConfigError
from ai_inference.prompt import (
    is_prompt_yaml_file,
    load_prompt_file,
    parse_file_template_variables,
    parse_template_variables,
    replace_template_variables,
)

PROMPT_YAML = """\
messages:
  - role: system
    content: Be terse.
  - role: user
    content: "Summarize {{issue}} for {{team}}"
model: openai/gpt-4o-mini
modelParameters:
  maxTokens: 500
  temperature: 0.3
  topP: 0.8
responseFormat: json_schema
jsonSchema: |
  {"name": "summary", "schema": {"type": "object"}}
"""


class TestPromptFileDetection:
    @pytest.mark.parametrize("path", ["a.prompt.yml", "dir/b.prompt.yaml"])
    def test_prompt_yaml(self, path):
        assert is_prompt_yaml_file(path)

    @pytest.mark.parametrize("path", ["a.yml", "prompt.txt", "a.prompt.json"])
    def test_not_prompt_yaml(self, path):
        assert not is_prompt_yaml_file(path)


class TestTemplateVariables:
    def test_empty_input(self):
        assert parse_template_variables("") == {}
        assert parse_template_variables("  \n") == {}

    def test_mapping(self):
        assert parse_template_variables("a: 1\nb: two") == {"a": 1, "b": "two"}

    def test_non_printable_characters_removed(self):
        assert parse_template_variables("name: bo\x07b") == {"name": "bob"}

    def test_non_mapping_rejected(self):
        with pytest.raises(ConfigError, match="must be a YAML object"):
            parse_template_variables("- a\n- b")

    def test_replace(self):
        text = replace_template_variables("Hi {{name}}, see {{file.txt}}", {"name": "Ada", "file.txt": "x"})
        assert text == "Hi Ada, see x"

    def test_unknown_variable_left_in_place(self):
        assert replace_template_variables("Hi {{who}}", {}) == "Hi {{who}}"


class TestFileTemplateVariables:
    def test_reads_file_contents(self, tmp_path):
        diff = tmp_path / "change.diff"
        diff.write_text("+ added line")
        result = parse_file_template_variables(f"diff: {diff}")
        assert result == {"diff": "+ added line"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="was not found"):
            parse_file_template_variables(f"diff: {tmp_path / 'nope.txt'}")

    def test_non_string_path(self):
        with pytest.raises(ConfigError, match="must be a string file path"):
            parse_file_template_variables("diff: 3")

    def test_empty(self):
        assert parse_file_template_variables("") == {}


class TestLoadPromptFile:
    def test_full_prompt_file(self, tmp_path):
        path = tmp_path / "summary.prompt.yml"
        path.write_text(PROMPT_YAML)
        config = load_prompt_file(path, {"issue": "#12", "team": "infra"})

        assert [m.role for m in config.messages] == ["system", "user"]
        assert config.messages[1].content == "Summarize #12 for infra"
        assert config.model == "openai/gpt-4o-mini"
        assert config.model_parameters.max_tokens == 500
        assert config.model_parameters.temperature == 0.3
        assert config.model_parameters.top_p == 0.8
        assert config.response_format == "json_schema"
        assert '"summary"' in config.json_schema

    def test_quoted_model_parameters_are_converted(self, tmp_path):
        path = tmp_path / "quoted.prompt.yml"
        path.write_text(
            "messages:\n"
            "  - role: user\n"
            "    content: hi\n"
            "modelParameters:\n"
            "  maxTokens: \"500\"\n"
            "  temperature: \"0.2\"\n"
            "  topP: \"1\"\n"
        )
        params = load_prompt_file(path).model_parameters
        assert params.max_tokens == 500
        assert params.temperature == 0.2
        assert params.top_p == 1.0

    @pytest.mark.parametrize("value", ["lots", "true", "[1]"])
    def test_non_numeric_max_tokens(self, tmp_path, value):
        path = tmp_path / "bad.prompt.yml"
        path.write_text(
            "messages:\n"
            "  - role: user\n"
            "    content: hi\n"
            "modelParameters:\n"
            f"  maxTokens: {value}\n"
        )
        with pytest.raises(ConfigError, match="modelParameters.maxTokens must be a number"):
            load_prompt_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Prompt file not found"):
            load_prompt_file(tmp_path / "missing.prompt.yml")

    def test_messages_required(self, tmp_path):
        path = tmp_path / "bad.prompt.yml"
        path.write_text("model: x\n")
        with pytest.raises(ConfigError, match='"messages" array'):
            load_prompt_file(path)

    def test_invalid_role(self, tmp_path):
        path = tmp_path / "bad.prompt.yml"
        path.write_text("messages:\n  - role: tool\n    content: hi\n")
        with pytest.raises(ConfigError, match="Invalid message role: tool"):
            load_prompt_file(path)

    def test_message_without_content(self, tmp_path):
        path = tmp_path / "bad.prompt.yml"
        path.write_text("messages:\n  - role: user\n")
        with pytest.raises(ConfigError, match='"role" and "content"'):
            load_prompt_file(path)
