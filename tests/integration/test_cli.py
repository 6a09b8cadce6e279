"""End-to-end tests for the translate-json command line."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from translate_json.cli import build_parser, main


@pytest.fixture
def workdir(tmp_path, monkeypatch, clean_env):
    """Run the command from an empty directory, without config.yaml or .env."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_identity_translator_round_trip(workdir, read_fixture):
    input_path = workdir / "input.json"
    output_path = workdir / "output.json"
    input_path.write_bytes(read_fixture('dashboard_input.json'))

    exit_code = main([str(input_path), str(output_path), "--translator", "identity"])

    assert exit_code == 0
    assert output_path.read_bytes() == input_path.read_bytes()


def test_openai_translator(workdir, read_fixture, monkeypatch):
    translations = {
        "查看更多仪表板": "View more dashboards",
        "pls!": "no",
        "https://github.com/starsliao/Prometheus": "abcdeasd",
        "object:1091": "",
    }

    async def fake_create(**kwargs):
        text = kwargs['messages'][1]['content']
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(
            content=translations.get(text, text)))])

    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=fake_create)

    input_path = workdir / "input.json"
    output_path = workdir / "output.json"
    input_path.write_bytes(read_fixture('dashboard_input.json'))
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")

    with patch('translate_json.translators.AsyncOpenAI', return_value=client) as mock_openai, \
            patch('translate_json.translators.count_tokens', return_value=1):
        exit_code = main([str(input_path), str(output_path), "--language", "en"])

    assert exit_code == 0
    mock_openai.assert_called_once_with(api_key="sk-test-key")
    # blank value and duplicate description are not sent
    assert client.chat.completions.create.await_count == 6
    expected = read_fixture('dashboard_output.json').replace(b'"mmm"', b'""')
    assert output_path.read_bytes() == expected


def test_environment_selects_translator(workdir, monkeypatch):
    input_path = workdir / "input.json"
    output_path = workdir / "output.json"
    input_path.write_bytes(b'["a"]\n')
    monkeypatch.setenv("APP_TRANSLATOR", "identity")

    assert main([str(input_path), str(output_path)]) == 0
    assert output_path.read_bytes() == b'["a"]\n'


def test_missing_api_key_fails(workdir):
    input_path = workdir / "input.json"
    input_path.write_bytes(b'"a"\n')
    output_path = workdir / "output.json"

    assert main([str(input_path), str(output_path), "--translator", "openai"]) == 1
    assert not output_path.exists()


def test_unknown_translator_fails(workdir):
    input_path = workdir / "input.json"
    input_path.write_bytes(b'"a"\n')
    assert main([str(input_path), str(workdir / "output.json"), "--translator", "yandex"]) == 1


def test_missing_input_file_fails(workdir):
    assert main([str(workdir / "missing.json"), str(workdir / "output.json"), "--translator", "identity"]) == 1


def test_empty_arguments_fail(workdir):
    assert main(["", str(workdir / "output.json"), "--translator", "identity"]) == 1


def test_invalid_input_fails(workdir):
    input_path = workdir / "input.json"
    input_path.write_bytes(b'[\n  "bad \\x escape"\n]\n')
    output_path = workdir / "output.json"

    assert main([str(input_path), str(output_path), "--translator", "identity"]) == 1
    assert output_path.read_bytes() == b'[\n'


def test_config_file_option(workdir):
    config_path = workdir / "settings.yaml"
    config_path.write_text("translator: identity\nmax_line_length: 4\n", encoding='utf-8')
    input_path = workdir / "input.json"
    input_path.write_bytes(b'"a"\n"too long"\n')

    assert main([str(input_path), str(workdir / "output.json"), "--config", str(config_path)]) == 1


def test_unusable_log_file_fails(workdir):
    (workdir / "blocker").write_text("not a directory", encoding='utf-8')
    config_path = workdir / "settings.yaml"
    config_path.write_text(
        "translator: identity\nlogging:\n  log_file_path: blocker/log.txt\n", encoding='utf-8')
    input_path = workdir / "input.json"
    input_path.write_bytes(b'"a"\n')
    output_path = workdir / "output.json"

    assert main([str(input_path), str(output_path), "--config", str(config_path)]) == 1
    assert not output_path.exists()


def test_wrong_number_of_arguments():
    with pytest.raises(SystemExit) as exc_info:
        build_parser().parse_args(["only-one.json"])
    assert exc_info.value.code == 2
