# Experiment orchestration and plots

from .hyperparameter_tuning import HyperparameterTuner, tune_models

__all__ = [
    "HyperparameterTuner",
    "tune_models",
]
