# Model families behind the ModelSpec interface

from .base import FittedModel, ModelSpec
from .linear_models import LinearRegressionSpec, LogisticRegressionSpec
from .tree_models import DecisionTreeSpec, RandomForestSpec
from .models_registry import get_model_and_space, search_space

__all__ = [
    "ModelSpec",
    "FittedModel",
    "LinearRegressionSpec",
    "LogisticRegressionSpec",
    "DecisionTreeSpec",
    "RandomForestSpec",
    "get_model_and_space",
    "search_space",
]
