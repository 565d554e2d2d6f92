"""Model registry and the process-wide default registry."""

import logging
from collections.abc import Callable, Mapping
from contextvars import ContextVar
from typing import Any

from rowmap.core.hooks import HookRegistry
from rowmap.core.model import Model
from rowmap.core.record import Record, split_path
from rowmap.core.validator import Validator
from rowmap.validation import (
    AmbiguousNamespaceError,
    ModelValidationError,
    UnknownEntityError,
    UnknownValidatorError,
    validate_model,
)

logger = logging.getLogger(__name__)


class ModelRegistry:
    """Registry of models, validators and hooks.

    Models are registered once at startup. Registering a model under an
    existing name replaces it.
    """

    def __init__(self, hooks: HookRegistry | None = None):
        self.models: dict[str, Model] = {}
        self.validators: dict[tuple[str, str], Validator] = {}
        self.hooks = hooks or HookRegistry()
        self._token = None

    def __enter__(self):
        """Context manager entry - set as current registry."""
        self._token = _current_registry.set(self)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - restore the previous registry."""
        _current_registry.reset(self._token)
        self._token = None

    def __contains__(self, name: str) -> bool:
        return name in self.models

    def register(self, model: Model) -> Model:
        """Register a model.

        Args:
            model: Model to register

        Returns:
            The registered model

        Raises:
            ModelValidationError: If model validation fails
        """
        errors = validate_model(model)
        if errors:
            raise ModelValidationError(
                f"Model '{model.name}' validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )

        if model.name in self.models:
            logger.info("Replacing model %s", model.name)
        self.models[model.name] = model
        return model

    def lookup(self, name: str) -> Model:
        """Get model by name.

        Raises:
            UnknownEntityError: If model not found
        """
        if name not in self.models:
            raise UnknownEntityError(f"Model {name} not found")
        return self.models[name]

    def infer_model(self, data: Mapping[str, Any]) -> Model:
        """Determine the model of a record.

        Records carry their model explicitly. Plain mappings must namespace
        every key with one registered model name, e.g. ``{"user.email": ...}``.

        Raises:
            AmbiguousNamespaceError: If keys are unnamespaced, span several
                namespaces, or name an unregistered model
        """
        if isinstance(data, Record):
            return self.lookup(data.model)

        namespaces = set()
        for key in data:
            namespace, _ = split_path(str(key))
            if namespace is None:
                raise AmbiguousNamespaceError(
                    f"Cannot infer model: key '{key}' has no namespace. "
                    f"Use 'model.attribute' keys or pass the model explicitly."
                )
            namespaces.add(namespace)

        if len(namespaces) != 1:
            found = ", ".join(sorted(namespaces)) or "none"
            raise AmbiguousNamespaceError(f"Cannot infer model: keys must share one namespace, found {found}")

        namespace = namespaces.pop()
        if namespace not in self.models:
            raise AmbiguousNamespaceError(f"Cannot infer model: namespace '{namespace}' is not a registered model")
        return self.models[namespace]

    def resolve_model(self, model: "Model | str | None", data: Mapping[str, Any] | None = None) -> Model:
        """Resolve a model given by object, name, or inferred from data."""
        if isinstance(model, Model):
            return model
        if model is not None:
            return self.lookup(model)
        return self.infer_model(data or {})

    def register_validator(self, validator: Validator) -> Validator:
        """Register a validator, replacing any validator of the same model and name."""
        self.lookup(validator.model)
        self.validators[(validator.model, validator.name)] = validator
        return validator

    def validator(
        self, model: str, name: str, path: str, message: str, always: bool = False
    ) -> Callable[[Callable[[Mapping[str, Any]], bool]], Callable[[Mapping[str, Any]], bool]]:
        """Decorator registering a predicate as a validator.

        Example:
            >>> @registry.validator("user", "password_match", path="password_confirmation",
            ...                     message="Passwords don't match")
            ... def password_match(record):
            ...     return record.get("password") == record.get("password_confirmation")
        """

        def decorator(fn):
            self.register_validator(Validator(model=model, name=name, path=path, fn=fn, message=message, always=always))
            return fn

        return decorator

    def get_validator(self, model: str, name: str) -> Validator:
        """Get validator by model and name.

        Raises:
            UnknownValidatorError: If validator not found
        """
        key = (model, name)
        if key not in self.validators:
            raise UnknownValidatorError(f"Validator {name} not found for model {model}")
        return self.validators[key]

    def validators_for(self, model: Model, names: list[str] | None = None) -> list[Validator]:
        """Collect validators to run for a changeset, in a stable order.

        Always-on validators (flagged on the validator or listed on the model)
        come first, followed by requested names. Duplicates run once.
        """
        selected: list[Validator] = []
        for (model_name, _), validator in self.validators.items():
            if model_name == model.name and validator.always:
                selected.append(validator)
        for name in [*model.validators, *(names or [])]:
            validator = self.get_validator(model.name, name)
            if validator not in selected:
                selected.append(validator)
        return selected

    def clear(self) -> None:
        """Remove all models and validators."""
        self.models.clear()
        self.validators.clear()


_default_registry = ModelRegistry()

# Context-local override for the current registry
_current_registry: ContextVar[ModelRegistry | None] = ContextVar("current_registry", default=None)


def get_registry() -> ModelRegistry:
    """Get the current registry, falling back to the process-wide default."""
    return _current_registry.get() or _default_registry


def set_current_registry(registry: ModelRegistry | None):
    """Set the current registry context."""
    _current_registry.set(registry)


def register(model: Model) -> Model:
    """Register a model with the current registry."""
    return get_registry().register(model)