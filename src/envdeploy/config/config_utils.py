"""Placeholder substitution for the environment registry file."""

import os
import re

# ${NAME}, ${NAME:-default} or ${NAME:?message}
_PLACEHOLDER = re.compile(
    r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?:(?P<op>:[-?])(?P<arg>[^}]*))?\}"
)


def _resolve(match: re.Match[str], lineno: int, missing: list[str]) -> str:
    name, op, arg = match.group("name", "op", "arg")
    value = os.getenv(name)
    if value is not None:
        return value
    if op == ":-":
        return arg
    hint = arg if op == ":?" else "not set"
    missing.append(f"line {lineno}: {name} ({hint})")
    return match.group(0)


def substitute_env_vars(text: str) -> str:
    """Substitute environment variable placeholders in registry YAML.

    Supports formats:
    - ${VAR_NAME} - required variable
    - ${VAR_NAME:-default} - optional with default value
    - ${VAR_NAME:?error_message} - required with custom error message

    Full-line YAML comments are copied unchanged, so a commented-out
    placeholder never has to be set.

    Raises:
        ValueError: Naming every unset required variable and its line
    """
    missing: list[str] = []
    lines: list[str] = []

    for lineno, line in enumerate(text.splitlines(keepends=True), start=1):
        if line.lstrip().startswith("#"):
            lines.append(line)
            continue
        lines.append(
            _PLACEHOLDER.sub(lambda m, n=lineno: _resolve(m, n, missing), line)
        )

    if missing:
        raise ValueError(
            "Required environment variables are not set:\n  " + "\n  ".join(missing)
        )
    return "".join(lines)
