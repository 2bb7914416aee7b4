# Branch Simulation Package
"""
Bit-Budget Branch Predictor Evaluation

Replays branch traces through interchangeable direction predictors:
- Bimodal baseline (PC-indexed saturating counters)
- GShare (PC XOR global history)
- YAGS (bimodal base + tagged exception caches)
"""

__version__ = "1.0.0"
