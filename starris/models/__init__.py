"""
End-to-end pipeline models for STAR-RIS channel generation
"""

from .model import Orchestrator, ResultBundle, run_pipeline

__all__ = ['Orchestrator', 'ResultBundle', 'run_pipeline']
