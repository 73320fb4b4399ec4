from pathlib import Path
import textwrap

import pytest

from ambari_manager.errors import ValidationError
from ambari_manager.playbook import PlaybookLoader, parse_variables, resolve_inputs
from ambari_manager.types import Input


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "playbook.yml"
    path.write_text(textwrap.dedent(text).strip() + "\n")
    return path


def _no_prompt(name: str) -> str:
    raise AssertionError(f"unexpected prompt for {name}")


def test_default_used_without_override() -> None:
    assert resolve_inputs([Input("A", default="x")], {}, _no_prompt) == {"A": "x"}


def test_override_wins_over_default() -> None:
    assert resolve_inputs([Input("A", default="x")], {"A": "y"}, _no_prompt) == {"A": "y"}


def test_missing_value_is_prompted_once() -> None:
    asked: list[str] = []

    def prompt(name: str) -> str:
        asked.append(name)
        return "42"

    resolved = resolve_inputs([Input("BuildNumber"), Input("Version", default="2.7")], None, prompt)

    assert resolved == {"BuildNumber": "42", "Version": "2.7"}
    assert asked == ["BuildNumber"]


def test_parse_variables() -> None:
    assert parse_variables("A=1 B=x=y") == {"A": "1", "B": "x=y"}
    assert parse_variables("") == {}
    with pytest.raises(ValidationError):
        parse_variables("A=1 broken")


def test_loader_renders_dot_placeholders(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        name: "Upgrade logsearch rpm"
        inputs:
          - name: BuildNumber
          - name: AmbariBaseVersion
            default: 2.7.100.0
        tasks:
          - name: "Download repo"
            type: RemoteCommand
            components: LOGSEARCH_SERVER
            command: "curl -o /etc/yum.repos.d/ambari.repo http://repo/{{.AmbariBaseVersion}}-{{ BuildNumber }}/ambaribn.repo"
          - name: "Stop"
            type: AmbariCommand
            command: STOP
            components: LOGSEARCH_SERVER
            services: LOGSEARCH
        """,
    )
    playbook = PlaybookLoader(prompt=lambda name: "17").load(path)

    assert playbook.name == "Upgrade logsearch rpm"
    assert [i.name for i in playbook.inputs] == ["BuildNumber", "AmbariBaseVersion"]
    first, second = playbook.tasks
    assert first.command == "curl -o /etc/yum.repos.d/ambari.repo http://repo/2.7.100.0-17/ambaribn.repo"
    assert first.targeting.components == "LOGSEARCH_SERVER"
    assert second.targeting.services == "LOGSEARCH"
    assert second.type == "AmbariCommand"


def test_loader_parses_flags_and_parameters(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        name: flags
        tasks:
          - name: upload
            type: Upload
            hosts: [h1, h2]
            parameters:
              source: /tmp/a
              target: /opt/a
              mode: 644
          - name: server
            type: RemoteCommand
            ambari_server: true
            command: ambari-server restart
          - name: local
            type: LocalCommand
            ambari_agent: true
            command: ls
        """,
    )
    playbook = PlaybookLoader(prompt=_no_prompt).load(path)

    upload, server, local = playbook.tasks
    assert upload.targeting.hosts == "h1,h2"
    assert upload.parameters == {"source": "/tmp/a", "target": "/opt/a", "mode": "644"}
    assert server.targeting.ambari_server is True
    assert local.targeting.ambari_agent is True


def test_loader_keeps_missing_type_for_runner(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        tasks:
          - name: untyped
            command: ls
        """,
    )
    playbook = PlaybookLoader(prompt=_no_prompt).load(path)

    assert playbook.tasks[0].type is None


def test_loader_rejects_undefined_variables(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        tasks:
          - type: LocalCommand
            command: "echo {{.Missing}}"
        """,
    )
    with pytest.raises(ValidationError, match="Missing"):
        PlaybookLoader(prompt=_no_prompt).load(path)


def test_extra_variables_are_available(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        tasks:
          - type: LocalCommand
            command: "echo {{.Extra}}"
        """,
    )
    playbook = PlaybookLoader(prompt=_no_prompt).load(path, {"Extra": "value"})

    assert playbook.tasks[0].command == "echo value"


def test_shell_braces_pass_through_untouched(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        tasks:
          - type: RemoteCommand
            command: "echo ${#HOME} {%raw%} {# kept #} {{.Extra}}"
        """,
    )
    playbook = PlaybookLoader(prompt=_no_prompt).load(path, {"Extra": "value"})

    assert playbook.tasks[0].command == "echo ${#HOME} {%raw%} {# kept #} value"


@pytest.mark.parametrize(
    "text",
    [
        "tasks: [unclosed",
        "- just\n- a list\n",
        "tasks: not-a-list\n",
        "tasks:\n  - type: Upload\n    parameters: [a, b]\n",
    ],
)
def test_loader_rejects_malformed_documents(tmp_path: Path, text: str) -> None:
    path = tmp_path / "bad.yml"
    path.write_text(text)
    with pytest.raises(ValidationError):
        PlaybookLoader(prompt=_no_prompt).load(path)


def test_loader_reports_unreadable_file(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="Cannot read playbook"):
        PlaybookLoader().load(tmp_path / "missing.yml")
