# src/neogm/orm/registry.py
"""
neogm Model Registry

Maps graph labels to entity classes so that nodes coming back from a query
can be turned into the right Python type, including nodes whose label set
is ambiguous or polymorphic.

A registry is populated once at startup and frozen as soon as a repository
starts using it. ``default_registry`` backs the module-level
``register_model`` for applications that want a single process-wide one.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Type
import logging

from neogm.exceptions import MappingError, ModelRegistrationError
from neogm.orm.entities import GraphEntity


logger = logging.getLogger(__name__)


class ModelRegistry:
    """
    Label -> entity class mapping.

    Example:
        ```python
        registry = ModelRegistry({"User": User, "World": World})
        registry.resolve_type(["Admin", "User"])  # -> User
        ```
    """

    def __init__(self, models: Optional[Mapping[str, Any]] = None):
        self._models: Dict[str, Type[GraphEntity]] = {}
        self._frozen = False
        for label, model in (models or {}).items():
            self.register(label, model)

    def register(self, label: str, model: Any) -> "ModelRegistry":
        """
        Register an entity class under ``label``. Last registration wins.

        Args:
            label: Graph label
            model: A GraphEntity subclass or an instance of one

        Returns:
            Self for method chaining

        Raises:
            ModelRegistrationError: If ``model`` is not a GraphEntity class or
                instance, the label is empty, or the registry is frozen
        """
        if self._frozen:
            raise ModelRegistrationError(
                f"Cannot register {label!r}: the registry is frozen once operations have started"
            )
        if not isinstance(label, str) or not label:
            raise ModelRegistrationError(f"Model label must be a non-empty string, got {label!r}")

        entity_cls = model if isinstance(model, type) else type(model)
        if not issubclass(entity_cls, GraphEntity):
            raise ModelRegistrationError(
                f"model {label} must be a GraphEntity subclass or instance, got {entity_cls.__name__}"
            )

        previous = self._models.get(label)
        if previous is not None and previous is not entity_cls:
            logger.info("Label %r re-registered: %s replaces %s", label, entity_cls.__name__, previous.__name__)
        self._models[label] = entity_cls
        return self

    def resolve_type(self, labels: Iterable[str]) -> Type[GraphEntity]:
        """
        First registered class among ``labels``, checked in the given order.

        Raises:
            MappingError: If no label is registered
        """
        labels = list(labels)
        for label in labels:
            entity_cls = self._models.get(label)
            if entity_cls is not None:
                return entity_cls
        raise MappingError(f"unresolved label: none of {labels} is registered")

    def get(self, label: str) -> Optional[Type[GraphEntity]]:
        return self._models.get(label)

    def labels(self) -> List[str]:
        return list(self._models)

    def freeze(self) -> "ModelRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, label: str) -> bool:
        return label in self._models

    def __len__(self) -> int:
        return len(self._models)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"ModelRegistry({self.labels()}, {state})"


default_registry = ModelRegistry()


def register_model(label: str, model: Any) -> None:
    """Register ``model`` under ``label`` in the process-wide registry."""
    default_registry.register(label, model)


def resolve_type(labels: Iterable[str]) -> Type[GraphEntity]:
    """Resolve ``labels`` against the process-wide registry."""
    return default_registry.resolve_type(labels)
