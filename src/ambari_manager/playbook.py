from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable, Optional

import jinja2
import yaml

from .errors import ValidationError
from .types import Input, Playbook, Targeting, Task

logger = logging.getLogger(__name__)

Prompt = Callable[[str], str]


def parse_variables(text: Optional[str]) -> dict[str, str]:
    """Parse ``"A=1 B=2"`` style overrides given on the command line."""

    variables: dict[str, str] = {}
    if not text:
        return variables
    for pair in text.split():
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValidationError(f"Variable '{pair}' must be KEY=VALUE")
        variables[key] = value
    return variables


def resolve_inputs(
    inputs: list[Input],
    variables: Optional[dict[str, str]] = None,
    prompt: Optional[Prompt] = None,
) -> dict[str, str]:
    """Resolve every declared input: explicit value, then default, then prompt."""

    resolved = dict(variables or {})
    ask = prompt or _prompt
    for item in inputs:
        if item.name in resolved:
            logger.info("Found input: %s - %s", item.name, resolved[item.name])
            continue
        if item.default:
            resolved[item.name] = item.default
            continue
        resolved[item.name] = ask(item.name)
    return resolved


def _prompt(name: str) -> str:
    return input(f"Enter {name}: ").strip()


class PlaybookLoader:
    """Loads playbook definitions from YAML files."""

    # Go template style placeholders: {{.Name}}
    DOT_PLACEHOLDER_RE = re.compile(r"\{\{\s*\.(\w+)\s*\}\}")
    TASK_KEYS = {
        "name",
        "type",
        "command",
        "services",
        "components",
        "hosts",
        "ambari_server",
        "ambari_agent",
        "parameters",
    }

    def __init__(self, prompt: Optional[Prompt] = None):
        self.prompt = prompt

    def load(self, path: Path, variables: Optional[dict[str, str]] = None) -> Playbook:
        path = Path(path)
        try:
            text = path.read_text()
        except OSError as exc:
            raise ValidationError(f"Cannot read playbook {path}: {exc}") from None
        try:
            return self.loads(text, variables)
        except ValidationError as exc:
            raise ValidationError(f"{path}: {exc}") from None

    def loads(self, text: str, variables: Optional[dict[str, str]] = None) -> Playbook:
        raw = self._parse_yaml(text)
        inputs = self._parse_inputs(raw.get("inputs"))
        context = resolve_inputs(inputs, variables, self.prompt)
        rendered = self._parse_yaml(self._render(text, context))
        tasks = self._parse_tasks(rendered.get("tasks"))
        return Playbook(
            name=str(rendered.get("name") or ""),
            description=str(rendered.get("description") or ""),
            tasks=tuple(tasks),
            inputs=tuple(inputs),
        )

    @staticmethod
    def _parse_yaml(text: str) -> dict[str, Any]:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            mark = getattr(exc, "problem_mark", None)
            where = f"{mark.line + 1}:{mark.column + 1} " if mark is not None else ""
            raise ValidationError(f"{where}invalid YAML: {getattr(exc, 'problem', exc)}") from None
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError("playbook must be a mapping")
        return data

    def _render(self, text: str, context: dict[str, str]) -> str:
        source = self.DOT_PLACEHOLDER_RE.sub(r"{{ \1 }}", text)
        env = jinja2.Environment(
            undefined=jinja2.StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            # Only {{ }} is markup; {% and {# are left alone for shell commands.
            block_start_string="\x00%",
            block_end_string="%\x00",
            comment_start_string="\x00#",
            comment_end_string="#\x00",
            line_statement_prefix=None,
            line_comment_prefix=None,
        )
        try:
            return env.from_string(source).render(**context)
        except jinja2.UndefinedError as exc:
            raise ValidationError(f"undefined playbook variable: {exc.message}") from None
        except jinja2.TemplateSyntaxError as exc:
            raise ValidationError(f"{exc.lineno}: template error: {exc.message}") from None

    @staticmethod
    def _parse_inputs(value: Any) -> list[Input]:
        if not value:
            return []
        if not isinstance(value, list):
            raise ValidationError("inputs must be a list")
        inputs: list[Input] = []
        for index, item in enumerate(value, start=1):
            if not isinstance(item, dict) or not item.get("name"):
                raise ValidationError(f"Input {index} requires a name")
            default = item.get("default")
            inputs.append(
                Input(name=str(item["name"]), default=None if default is None else str(default))
            )
        return inputs

    def _parse_tasks(self, value: Any) -> list[Task]:
        if not value:
            return []
        if not isinstance(value, list):
            raise ValidationError("tasks must be a list")
        tasks: list[Task] = []
        for index, raw in enumerate(value, start=1):
            if not isinstance(raw, dict):
                raise ValidationError(f"Task {index} must be a mapping")
            tasks.append(self._parse_task(raw, index))
        return tasks

    def _parse_task(self, raw: dict[str, Any], index: int) -> Task:
        unknown = set(raw) - self.TASK_KEYS
        if unknown:
            logger.warning("Task %s: ignoring unknown keys %s", index, ", ".join(sorted(unknown)))
        parameters = raw.get("parameters") or {}
        if not isinstance(parameters, dict):
            raise ValidationError(f"Task {index} parameters must be a mapping")
        targeting = Targeting(
            services=_optional_str(raw.get("services")),
            components=_optional_str(raw.get("components")),
            hosts=_optional_str(raw.get("hosts")),
            ambari_server=bool(raw.get("ambari_server", False)),
            ambari_agent=bool(raw.get("ambari_agent", False)),
        )
        return Task(
            name=str(raw.get("name") or ""),
            type=_optional_str(raw.get("type")),
            command=_optional_str(raw.get("command")),
            parameters={str(k): str(v) for k, v in parameters.items() if v is not None},
            targeting=targeting,
        )


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = ",".join(str(v) for v in value)
    text = str(value).strip()
    return text or None
