# Predictors Package
from .base import (
    BasePredictor,
    PredictionResult,
    BimodalPredictor,
    GSharePredictor,
)
from .yags import YAGSPredictor
from .config import PredictorConfig, VARIANTS, create_predictor

__all__ = [
    'BasePredictor',
    'PredictionResult',
    'BimodalPredictor',
    'GSharePredictor',
    'YAGSPredictor',
    'PredictorConfig',
    'VARIANTS',
    'create_predictor',
]
