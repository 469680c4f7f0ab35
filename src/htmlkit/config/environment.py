"""Environment variable substitution in configuration values."""

import os
import re
from typing import Any, Union

# ${VAR}, ${VAR:default}, ${VAR:-default}, ${VAR:?message}
REFERENCE_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(:[?-]?[^}]*)?\}")


class EnvironmentSubstitutionError(Exception):
    """Raised when a referenced environment variable cannot be resolved."""

    pass


def substitute_environment_variables(value: Any, strict: bool = False) -> Any:
    """Replace ``${VAR}`` references throughout a configuration tree.

    Supported forms:
    - ${VAR} - value of VAR; left as-is when unset unless strict
    - ${VAR:default} / ${VAR:-default} - value of VAR, else default
    - ${VAR:?message} - value of VAR, else fail with message

    A string made of a single reference is coerced to bool, int or float
    when the substituted text looks like one.

    Args:
        value: String, mapping, list or primitive to process
        strict: Fail on any unset variable, even one with a default

    Returns:
        Value with references substituted

    Raises:
        EnvironmentSubstitutionError: If a required variable is missing
    """
    if isinstance(value, str):
        return _substitute_in_string(value, strict)
    if isinstance(value, dict):
        return {key: substitute_environment_variables(item, strict) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute_environment_variables(item, strict) for item in value]
    return value


def _substitute_in_string(text: str, strict: bool) -> Union[str, int, float, bool]:
    if "${" not in text:
        return text

    def replace(match: "re.Match[str]") -> str:
        name, modifier = match.group(1), match.group(2)
        current = os.environ.get(name)
        if current is not None:
            return current

        if modifier is None:
            if strict:
                raise EnvironmentSubstitutionError(
                    f"Environment variable '{name}' is not set. "
                    f"Suggestion: export {name}=value"
                )
            return match.group(0)

        if modifier.startswith(":?"):
            message = modifier[2:] or f"{name} is required"
            raise EnvironmentSubstitutionError(f"Environment variable '{name}': {message}")

        if strict:
            raise EnvironmentSubstitutionError(
                f"Environment variable '{name}' is not set and defaults are not "
                f"allowed in strict mode"
            )
        return modifier[2:] if modifier.startswith(":-") else modifier[1:]

    result = REFERENCE_PATTERN.sub(replace, text)
    whole = REFERENCE_PATTERN.fullmatch(text)
    if whole is not None and result != text:
        return _coerce_type(result)
    return result


def _coerce_type(value: str) -> Union[str, int, float, bool]:
    """Coerce a substituted string to bool, int or float where it parses."""
    lowered = value.lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False

    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value
