"""Load model definitions from YAML files."""

import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

import yaml

from rowmap.core.attribute import Attribute
from rowmap.core.model import Model
from rowmap.core.relationship import Relationship
from rowmap.validation import ModelValidationError

if TYPE_CHECKING:
    from rowmap.core.registry import ModelRegistry

logger = logging.getLogger(__name__)


def substitute_env_vars(content: str) -> str:
    """Substitute environment variables in YAML content.

    Supports:
    - ${ENV_VAR} - replaced with environment variable value
    - ${ENV_VAR:-default} - replaced with value or default if not set

    Examples:
        >>> os.environ['TABLE_PREFIX'] = 'app_'
        >>> substitute_env_vars('table: ${TABLE_PREFIX}user')
        'table: app_user'
        >>> substitute_env_vars('table: ${MISSING:-user}')
        'table: user'
    """

    def replace_var(match):
        var_expr = match.group(1)
        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.environ.get(var_name, default)
        value = os.environ.get(var_expr)
        if value is None:
            # Keep original if not found
            return match.group(0)
        return value

    return re.sub(r"\$\{([^}]+)\}", replace_var, content)


def parse_models(content: str) -> list[Model]:
    """Parse YAML model definitions.

    Format:
    ```yaml
    models:
      - name: user
        relationships:
          - name: posts
            type: has_many
            model: post
        validators: [password_match]
        attributes:
          - name: id
            type: uuid
            primary_key: true
          - name: email
            pattern: ".+@.+\\\\..+"
            before_save: [lowercase]
    ```

    Raises:
        ModelValidationError: If the document is not a mapping with a models list
    """
    data = yaml.safe_load(substitute_env_vars(content)) or {}
    if not isinstance(data, dict) or not isinstance(data.get("models", []), list):
        raise ModelValidationError("Model file must be a mapping with a 'models' list")

    models = []
    for model_def in data.get("models", []):
        models.append(_parse_model(model_def))
    return models


def _parse_model(model_def: dict) -> Model:
    name = model_def.get("name")
    if not name:
        raise ModelValidationError(f"Model definition without a name: {model_def}")

    attributes = [Attribute(**attr_def) for attr_def in model_def.get("attributes", [])]
    relationships = [Relationship(**rel_def) for rel_def in model_def.get("relationships", [])]

    return Model(
        name=name,
        table=model_def.get("table"),
        description=model_def.get("description"),
        attributes=attributes,
        relationships=relationships,
        validators=model_def.get("validators", []),
    )


def load_models(path: str | Path, registry: "ModelRegistry | None" = None) -> list[Model]:
    """Load a YAML model file (or every .yml/.yaml file in a directory) into a registry.

    Args:
        path: File or directory
        registry: Registry to register into (defaults to current)

    Returns:
        Models registered, in file order
    """
    from rowmap.core.registry import get_registry

    registry = registry or get_registry()
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Model file not found: {path}")

    files = [path] if path.is_file() else sorted(p for p in path.rglob("*") if p.suffix in (".yml", ".yaml"))

    loaded = []
    for file_path in files:
        models = parse_models(file_path.read_text())
        for model in models:
            registry.register(model)
        logger.info("Loaded %d model(s) from %s", len(models), file_path)
        loaded.extend(models)
    return loaded
