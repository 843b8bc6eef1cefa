'''
Name-based lookup of likelihood models.

Models are registered under their ``name`` attribute, matched without
regard to case. The registry stores classes; :func:`get_model` returns a
fresh instance, and model instances are stateless so sharing one is safe.
'''

import logging
from typing import Dict, List, Type, Union

from apop.core.exceptions import ModelSpecificationError
from apop.models.base import Model

logger = logging.getLogger("apop.models.registry")

_MODELS: Dict[str, Type[Model]] = {}


def register_model(model_class: Type[Model]) -> Type[Model]:
    """
    Register a model class under its name.

    Usable as a class decorator. Registering a second class under an
    existing name replaces the first.

    Raises:
        ModelSpecificationError: If ``model_class`` is not a Model subclass
    """
    if not (isinstance(model_class, type) and issubclass(model_class, Model)):
        raise ModelSpecificationError(
            f"Cannot register {model_class!r}: not a Model subclass",
            model_type=str(model_class)
        )
    key = model_class.name.lower()
    if key in _MODELS and _MODELS[key] is not model_class:
        logger.warning(f"Replacing registered model '{model_class.name}'")
    _MODELS[key] = model_class
    return model_class


def get_model(model: Union[str, Model]) -> Model:
    """
    Resolve a model by name, or pass an instance through.

    Args:
        model: Registered model name (case-insensitive) or a Model instance

    Returns:
        Model: A model instance

    Raises:
        ModelSpecificationError: If the name is not registered
    """
    if isinstance(model, Model):
        return model
    if isinstance(model, type) and issubclass(model, Model):
        return model()
    try:
        return _MODELS[str(model).lower()]()
    except KeyError:
        raise ModelSpecificationError(
            f"Unknown model: {model}",
            model_type=str(model),
            valid_options=list_models()
        ) from None


def list_models() -> List[str]:
    """Names of the registered models, sorted."""
    return sorted(cls.name for cls in _MODELS.values())
