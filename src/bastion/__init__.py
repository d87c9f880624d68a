"""Bastion - device-posture and access-context risk scoring."""

__version__ = "0.1.0"

from bastion.scoring.engine import assess_risk, score_device_compliance

__all__ = ["__version__", "assess_risk", "score_device_compliance"]
