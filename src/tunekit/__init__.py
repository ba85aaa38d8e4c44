"""
tunekit: resampling-based hyperparameter tuning for tabular models.

Key modules:
- core.splitting: stratified train/test (and validation) splits
- core.cross_validation: V-fold cross-validation folds
- core.grid: regular and space-filling hyperparameter grids
- core.tuning: resampled fit/evaluate loop
- core.selection: aggregation, ranking and selection rules
- core.final_fit: final fit and holdout evaluation
- models: linear, logistic, decision tree and random forest families
- experiments: tuning pipeline and plots
"""

__version__ = "0.1.0"
