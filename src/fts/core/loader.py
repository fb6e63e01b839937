# fts/core/loader.py
"""
Definition loading and handler resolution.
"""
from __future__ import annotations

import importlib
import json
import logging
import os
import re
from pathlib import Path
from types import ModuleType
from typing import Any, Callable

import yaml

from fts.contracts.definition import Definition
from fts.core.errors import DefinitionError

logger = logging.getLogger(__name__)

# ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

DEFAULT_EXPORT = "default"


def import_attr(path: str) -> Any:
    """
    Dynamically import an attribute from a module.

    Args:
        path: Import path in format 'module.path:attribute'

    Raises:
        ValueError: If path format is invalid
        ImportError: If module cannot be imported
        AttributeError: If attribute doesn't exist
    """
    if ":" not in path:
        raise ValueError(f"Invalid import path '{path}', expected 'module:attr'")

    mod_name, attr = path.split(":", 1)
    try:
        mod = importlib.import_module(mod_name)
    except ImportError as exc:
        logger.error("Failed to import module '%s'", mod_name)
        raise ImportError(f"Cannot import module '{mod_name}'") from exc

    try:
        return getattr(mod, attr)
    except AttributeError as exc:
        logger.error("Module '%s' has no attribute '%s'", mod_name, attr)
        raise AttributeError(f"Module '{mod_name}' has no attribute '{attr}'") from exc


def substitute_env_vars(value: Any) -> Any:
    """Recursively expand ``${VAR}`` / ``${VAR:-default}`` in strings.

    Raises:
        ValueError: If a variable is unset and has no default.
    """
    if isinstance(value, str):
        return ENV_VAR_PATTERN.sub(_replace_env_var, value)
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(item) for item in value]
    return value


def _replace_env_var(match: re.Match) -> str:
    var_name, default = match.group(1), match.group(2)
    env_value = os.environ.get(var_name)
    if env_value is not None:
        return env_value
    if default is not None:
        return default
    raise ValueError(f"Environment variable '{var_name}' is not set and no default provided")


def load_definition(path: str | Path) -> Definition:
    """Read a Definition from a ``.json`` or ``.yaml``/``.yml`` file.

    YAML definitions may reference environment variables in string values.

    Raises:
        FileNotFoundError: The file does not exist.
        DefinitionError: Unknown extension, unparsable content or an
            invalid Definition.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    with path.open("r", encoding="utf-8") as fh:
        try:
            if suffix == ".json":
                data = json.load(fh)
            elif suffix in (".yaml", ".yml"):
                data = substitute_env_vars(yaml.safe_load(fh) or {})
            else:
                raise DefinitionError(f"Unsupported definition file type '{suffix}' ({path})")
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            logger.error("Failed to parse definition file '%s': %s", path, exc)
            raise DefinitionError(f"Cannot parse definition file '{path}': {exc}") from exc

    definition = Definition.from_dict(data)
    logger.info("Loaded definition '%s' from %s", definition.title, path)
    return definition


def resolve_handler(definition: Definition, target: ModuleType | str) -> Callable[..., Any]:
    """Locate the callable a Definition describes.

    ``target`` is a module, a module path, or ``module:attr`` (which wins
    over the export settings). Otherwise ``config.namedExport`` names the
    attribute; ``config.defaultExport`` selects ``default`` or a callable
    module.

    Raises:
        DefinitionError: The export is missing or not callable.
    """
    title = definition.title

    if isinstance(target, str) and ":" in target:
        try:
            func = import_attr(target)
        except (ImportError, AttributeError) as exc:
            raise DefinitionError(f"Cannot resolve function '{title}': {exc}") from exc
        return _ensure_callable(title, func, target)

    if isinstance(target, str):
        try:
            module = importlib.import_module(target)
        except ImportError as exc:
            raise DefinitionError(
                f"Cannot resolve function '{title}': module '{target}' not importable"
            ) from exc
    else:
        module = target

    config = definition.config
    if config.named_export:
        name = config.named_export
    elif config.default_export:
        if callable(module):
            return module
        name = DEFAULT_EXPORT
    else:
        raise DefinitionError(f"Function '{title}' declares no export to resolve")

    if not hasattr(module, name):
        raise DefinitionError(
            f"Function '{title}': module '{module.__name__}' has no export '{name}'"
        )
    return _ensure_callable(title, getattr(module, name), f"{module.__name__}:{name}")


def _ensure_callable(title: str, func: Any, where: str) -> Callable[..., Any]:
    if not callable(func):
        raise DefinitionError(f"Function '{title}': '{where}' is not callable")
    return func
