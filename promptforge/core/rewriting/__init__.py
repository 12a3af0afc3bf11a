"""
Rewriting module - Template and AI-assisted prompt rewrites

This module provides:
- templates: category-aware structured rewrite (always available)
- confidence: calibrated confidence for the template candidate
- prompts: system prompt, user message and reply parsing for providers
- fallback: provider failover with multi-temperature sampling
- orchestrator: rewrite(), the ranked candidate list
"""

from .orchestrator import rewrite
from .templates import build_template_candidate, render

__all__ = ['rewrite', 'build_template_candidate', 'render']
